"""Create the schema and seed an owner account for uploads"""
import argparse
import logging
from typing import Optional

from sqlalchemy.orm import Session

from mixtape.config import settings
from mixtape.database.db import create_db_engine, create_session_factory, init_db
from mixtape.models.user import User

logger = logging.getLogger(__name__)


def seed_user(db: Session, email: str, display_name: Optional[str] = None) -> User:
    """Insert a user, or update the display name of an existing one"""
    user = db.query(User).filter(User.email == email).first()
    if user is None:
        user = User(email=email, display_name=display_name)
        db.add(user)
    else:
        user.display_name = display_name
    db.commit()
    db.refresh(user)
    return user


def main(argv=None):
    parser = argparse.ArgumentParser(description="Seed a mixtape user")
    parser.add_argument("--email", default="seeduser@example.com")
    parser.add_argument("--display-name", default="Seed User")
    args = parser.parse_args(argv)

    settings.ensure_directories()
    engine = create_db_engine(settings.DATABASE_URL)
    init_db(engine)

    db = create_session_factory(engine)()
    try:
        user = seed_user(db, args.email, args.display_name)
    finally:
        db.close()

    print(f"User ID: {user.id}")
    print(f"Use user_id={user.id} when uploading tracks")


if __name__ == "__main__":
    main()
