"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

os.environ.setdefault("DATABASE_URL", "sqlite://")

# Добавить корень проекта в PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from models import Base, Account, Stake
from staking_system.events.event_bus import eventBus
from staking_system.utils.time_machine import timeMachine

START_TIME = datetime(2025, 1, 15, 0, 30, tzinfo=timezone.utc)


@pytest.fixture
def session():
    """Fresh in-memory SQLite database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine)
    session = factory()

    yield session

    session.close()
    engine.dispose()


@pytest.fixture(autouse=True)
def virtualTime():
    """Pin system time so day boundaries are deterministic."""
    timeMachine.setTime(START_TIME)
    yield timeMachine
    timeMachine.resetToRealTime()


@pytest.fixture(autouse=True)
def cleanEventBus():
    eventBus.clear()
    yield eventBus
    eventBus.clear()


@pytest.fixture
def makeAccount(session):
    """Insert an account directly, bypassing registration."""
    counter = {"n": 0}

    def _make(name=None, referrer=None, rank="B0", teamVolume="0"):
        counter["n"] += 1
        account = Account(
            name=name or f"user{counter['n']}",
            referrerID=referrer.accountID if referrer else None,
            rank=rank,
            teamVolume=Decimal(teamVolume),
            walletBalance=Decimal("0"),
            pointsBalance=Decimal("0")
        )
        session.add(account)
        session.flush()
        return account

    return _make


@pytest.fixture
def makeStake(session):
    """Insert an active stake directly; volumes and unlocks are not touched."""

    def _make(account, amount="100", dailyRate="1.00", cycleDays=30):
        now = timeMachine.now
        stake = Stake(
            accountID=account.accountID,
            amount=Decimal(amount),
            cycleDays=cycleDays,
            dailyRate=Decimal(dailyRate),
            startDate=now,
            endDate=now + timedelta(days=cycleDays),
            status=Stake.STATUS_ACTIVE,
            lastYieldDate=now
        )
        session.add(stake)
        session.flush()
        return stake

    return _make
