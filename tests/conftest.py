"""Test infrastructure: in-memory SQLite database, session and seed data.

Each test gets a fresh database.  Seed rows are flushed (never committed) and
the session is cleared afterwards, so tests always load fresh instances.
"""

from datetime import datetime
from types import SimpleNamespace

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from repository_pattern.infrastructure.database import Base
from sample_models import BankTransfer, CardPayment, Chargeback, Customer, Order, Tag


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine):
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest_asyncio.fixture
async def seeded(session):
    """Two customers, four orders, two tags, a card and a bank payment.

    alice (active): order 1 paid 50.0 card [rush, gift] shipped 2024-01-05
                    order 2 paid 70.0 bank [rush]       shipped 2024-02-10
                    order 3 pending 20.0
    bob (inactive): order 4 cancelled 10.0
    The card payment has two chargebacks (10.0 and 15.0).
    """
    alice = Customer(id=1, name="alice", email="alice@example.com", active=True)
    bob = Customer(id=2, name="bob", email=None, active=False)
    rush = Tag(id=1, name="rush")
    gift = Tag(id=2, name="gift")
    card = CardPayment(id=1, amount=120.0)
    bank = BankTransfer(id=2, amount=80.0)
    session.add_all(
        [
            alice,
            bob,
            rush,
            gift,
            card,
            bank,
            Chargeback(id=1, payment_id=1, amount=10.0),
            Chargeback(id=2, payment_id=1, amount=15.0),
            Order(
                id=1,
                customer=alice,
                status="paid",
                total=50.0,
                payment=card,
                tags=[rush, gift],
                shipped_at=datetime(2024, 1, 5),
            ),
            Order(
                id=2,
                customer=alice,
                status="paid",
                total=70.0,
                payment=bank,
                tags=[rush],
                shipped_at=datetime(2024, 2, 10),
            ),
            Order(id=3, customer=alice, status="pending", total=20.0),
            Order(id=4, customer=bob, status="cancelled", total=10.0),
        ]
    )
    await session.flush()
    session.expunge_all()
    return SimpleNamespace(alice_id=1, bob_id=2, card_id=1, bank_id=2)
