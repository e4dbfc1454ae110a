import os
import tempfile
from decimal import Decimal

os.environ.setdefault(
    "SPENDSMART_DATA_DIR", tempfile.mkdtemp(prefix="spendsmart-tests-")
)

import pytest  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from database import Base, build_engine  # noqa: E402
from models import EntryType  # noqa: E402
from schemas import CategoryIn, LedgerEntryIn, UserIn, WalletIn  # noqa: E402
from services import (  # noqa: E402
    CategoryService,
    LedgerService,
    UserService,
    WalletService,
)


@pytest.fixture()
def session():
    engine = build_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    engine.dispose()


@pytest.fixture()
def user(session):
    return UserService(session).create(UserIn(name="Ada", email="ada@example.com"))


@pytest.fixture()
def wallet(session, user):
    return WalletService(session, user.id).create(
        WalletIn(name="Checking", balance=Decimal("1000.00"), is_default=True)
    )


@pytest.fixture()
def add_category(session, user):
    service = CategoryService(session, user.id)

    def _add(name: str, color: str = "#2563EB"):
        return service.create(CategoryIn(name=name, color=color))

    return _add


@pytest.fixture()
def add_entry(session, user, wallet):
    service = LedgerService(session, user.id)

    def _add(
        amount: str,
        on,
        *,
        category=None,
        type: EntryType = EntryType.expense,
        description=None,
        wallet_id=None,
    ):
        return service.create(
            LedgerEntryIn(
                wallet_id=wallet_id or wallet.id,
                category_id=category.id if category else None,
                amount=Decimal(amount),
                transaction_date=on,
                type=type,
                description=description,
            )
        )

    return _add
