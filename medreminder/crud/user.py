from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import select

from medreminder.models.user import User


def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.get(User, user_id)


def list_users(db: Session) -> List[User]:
    return list(db.execute(select(User).order_by(User.id)).scalars())


def create_user(db: Session, name: str, email: str) -> User:
    user = User(name=name, email=email)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
