# Core module - config, security, database
from adpulse.core.config import settings
from adpulse.core.database import Base, SessionLocal, init_db
from adpulse.core.security import create_access_token, verify_token
