"""Create the initial admin account.

Usage:
    python -m reservily.seed

Reads ADMIN_EMAIL, ADMIN_PASSWORD and ADMIN_NAME from the environment (or .env).
Running it again leaves an existing account untouched.
"""

import logging

from sqlalchemy.orm import Session

from reservily.auth.passwords import hash_password
from reservily.core import config
from reservily.database import Base, SessionLocal, engine
from reservily.models.enums import Role
from reservily.models.user import User

logger = logging.getLogger(__name__)


def seed_admin(db: Session, email: str, password: str, name: str = 'Admin') -> User:
    normalized_email = email.strip().lower()
    admin = db.query(User).filter(User.email == normalized_email).first()
    if admin is not None:
        return admin

    admin = User(
        name=name,
        email=normalized_email,
        hashed_password=hash_password(password),
        role=Role.ADMIN,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    return admin


def main() -> None:
    logging.basicConfig(level=config.LOG_LEVEL)
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        admin = seed_admin(db, config.ADMIN_EMAIL, config.ADMIN_PASSWORD, config.ADMIN_NAME)
    finally:
        db.close()

    logger.info('Admin account ready: %s', admin.email)


if __name__ == '__main__':
    main()
