"""
DentalAI backend.

Layout:
- config.py         : settings from the environment / .env
- db.py             : SQLAlchemy engine and sessions
- models.py         : ORM models and enums
- services.py       : domain logic (patients, referrals, notes, appointments, AI use cases)
- ai_service.py     : chat-completion client for SOAP summaries and referral letters
- prompts.py        : fixed prompt templates
- api_main.py       : FastAPI app
- cli.py            : command line access to the same services
"""
