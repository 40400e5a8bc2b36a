# tests/conftest.py
import os
import uuid
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

# Settings require a DATABASE_URL before app modules are imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from app.core.enum_utils import get_enum_value  # noqa: E402
from app.database import build_engine, build_session_factory, init_db  # noqa: E402
from app.models.purchase import (  # noqa: E402
    POApprovalStatus,
    PaymentType,
    PurchaseOrder,
    PurchaseOrderItem,
    PurchaseOrderSkuMatrix,
)


# =========================================
# Per-test SQLite database file
# =========================================
@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'reconciliation.db'}")
    await init_db(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine: AsyncEngine):
    return build_session_factory(engine)


@pytest_asyncio.fixture(scope="function")
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as sess:
        yield sess


@pytest.fixture
def make_po(session: AsyncSession):
    """
    Factory for committed purchase orders.

    items:  {catalogue_sku: quantity}
    matrix: {catalogue_sku: {sub_sku: quantity}}
    """
    async def _make(
        items=None,
        matrix=None,
        status=POApprovalStatus.APPROVED,
        total_amount="1000",
        payment_type=PaymentType.ONE_TIME,
        credit_period_days=None,
        dc_id=None,
    ) -> PurchaseOrder:
        po = PurchaseOrder(
            po_number=f"PO-{uuid.uuid4().hex[:8].upper()}",
            vendor_id=uuid.uuid4(),
            dc_id=dc_id,
            status=get_enum_value(status),
            total_amount=Decimal(total_amount),
            payment_type=get_enum_value(payment_type),
            credit_period_days=credit_period_days,
        )
        for sku, qty in (items or {"SKU-A": 10}).items():
            item = PurchaseOrderItem(sku=sku, quantity=qty, unit_price=Decimal("10"))
            for sub_sku, sub_qty in (matrix or {}).get(sku, {}).items():
                item.sku_matrix.append(PurchaseOrderSkuMatrix(sku=sub_sku, quantity=sub_qty))
            po.items.append(item)

        session.add(po)
        await session.commit()
        return po

    return _make
