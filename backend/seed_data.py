"""Seed database with a demo user."""
from taskflow.auth import hash_password
from taskflow.database import Base, SessionLocal, engine
from taskflow.models import User
import uuid

DEMO_USER_ID = uuid.UUID('00000000-0000-0000-0000-000000000101')


def seed():
    """Seed database with demo data."""
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()

    try:
        if db.get(User, DEMO_USER_ID):
            print("Demo user already present, nothing to do")
            return

        db.add(
            User(
                id=DEMO_USER_ID,
                email="demo@taskflow.local",
                name="Demo User",
                password_hash=hash_password("demo12345"),
            )
        )
        db.commit()
        print("Created demo user demo@taskflow.local / demo12345")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed()
