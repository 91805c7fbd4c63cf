"""Database connection and session management."""
from decimal import Decimal
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from typing import Any, Dict, Generator
import logging

from config import DATABASE_URL, SEED_DATA, ADMIN_EMAIL, ADMIN_PASSWORD
from models import Base, Product, User, UserRole
from security import hash_password

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> Dict[str, Any]:
    """Connection pool settings for the configured backend."""
    if url.startswith("sqlite"):
        # Request handlers run on a threadpool
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": 10,
        "max_overflow": 20,
        "pool_pre_ping": True,  # Verify connections before use
        "pool_recycle": 3600,  # Recycle connections after 1 hour
        "pool_timeout": 30,  # Wait max 30 seconds for a connection
    }


engine = create_engine(DATABASE_URL, **_engine_options(DATABASE_URL))

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for getting database session.

    Yields:
        Database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


SEED_PRODUCTS = [
    ("Fresh Bananas", "Ripe yellow bananas, sold per bunch", "1.29", 120),
    ("Organic Apples", "Crisp red apples from local orchards", "3.49", 80),
    ("Whole Milk", "1 gallon of fresh whole milk", "3.99", 60),
    ("Sourdough Bread", "Freshly baked sourdough loaf", "4.50", 40),
    ("Free Range Eggs", "A dozen large brown eggs", "5.25", 70),
    ("Cheddar Cheese", "Aged sharp cheddar block, 8 oz", "6.75", 35),
    ("Baby Spinach", "Pre-washed baby spinach, 5 oz", "2.99", 50),
    ("Basmati Rice", "Long grain basmati rice, 2 lb", "7.49", 90),
]


def init_db() -> None:
    """Initialize database tables and seed data."""
    Base.metadata.create_all(bind=engine)

    if not SEED_DATA:
        return

    db = SessionLocal()
    try:
        if db.query(Product).count() == 0:
            db.add_all([
                Product(name=name, description=description, price=Decimal(price), quantity=quantity)
                for name, description, price, quantity in SEED_PRODUCTS
            ])
            db.commit()
            logger.info("Seeded database with sample products", extra={
                "product_count": len(SEED_PRODUCTS)
            })

        if db.query(User).filter(User.role == UserRole.ADMIN).count() == 0:
            db.add(User(
                email=ADMIN_EMAIL,
                password_hash=hash_password(ADMIN_PASSWORD),
                full_name="Store Administrator",
                role=UserRole.ADMIN
            ))
            db.commit()
            logger.info("Seeded default administrator account", extra={
                "email": ADMIN_EMAIL
            })
    finally:
        db.close()
