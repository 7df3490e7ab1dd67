"""
Default number series for a new organization.

One default series per document type, each with a single yearly range
``CODE-YYYY-0001..CODE-YYYY-9999`` that warns at ``CODE-YYYY-9800``.
Seeding is idempotent: series whose code already exists are left alone.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from p2p_kernel.logging_config import get_logger
from p2p_kernel.models.number_series import DocumentType
from p2p_kernel.services.number_series_service import NumberSeriesService, current_year_range

logger = get_logger("services.number_series_seeder")

# (code, document type, description)
DEFAULT_SERIES: tuple[tuple[str, DocumentType, str], ...] = (
    ("PO", DocumentType.PURCHASE_ORDER, "Purchase orders"),
    ("PREC", DocumentType.PURCHASE_RECEIPT, "Purchase receipts"),
    ("PINV", DocumentType.PURCHASE_INVOICE, "Purchase invoices"),
    ("PAY", DocumentType.PAYMENT, "Payments"),
    ("JE", DocumentType.JOURNAL_ENTRY, "Journal entries"),
    ("CUST", DocumentType.CUSTOMER, "Customers"),
    ("VEND", DocumentType.VENDOR, "Vendors"),
    ("SINV", DocumentType.SALES_INVOICE, "Sales invoices"),
    ("SO", DocumentType.SALES_ORDER, "Sales orders"),
    ("PROD", DocumentType.PRODUCT, "Products"),
    ("VAR", DocumentType.PRODUCT_VARIANT, "Product variants"),
    ("WT", DocumentType.WALLET_TRANSACTION, "Wallet transactions"),
    ("SM", DocumentType.STOCK_MOVEMENT, "Stock movements"),
    ("CONT", DocumentType.CONTACT, "Contacts"),
)


def seed_default_series(
    session: Session,
    organization_id: UUID,
    actor_id: UUID,
    year: int,
    document_types: set[DocumentType] | None = None,
) -> list[str]:
    """
    Create the default series for ``year``; returns the codes created.

    The caller owns the transaction.  ``document_types`` restricts seeding
    to a subset.
    """
    service = NumberSeriesService(session)
    existing = {
        s.code
        for doc_type in {d for _, d, _ in DEFAULT_SERIES}
        for s in service.get_series_by_type(organization_id, doc_type)
    }

    created: list[str] = []
    for code, document_type, description in DEFAULT_SERIES:
        if document_types is not None and document_type not in document_types:
            continue
        if code in existing:
            continue
        has_default = bool(
            [s for s in service.get_series_by_type(organization_id, document_type) if s.default_nos]
        )
        service.create_series(
            organization_id=organization_id,
            code=code,
            document_type=document_type,
            actor_id=actor_id,
            description=description,
            default_nos=not has_default,
            lines=[current_year_range(code, year)],
        )
        created.append(code)

    logger.info(
        "default_series_seeded",
        extra={
            "organization_id": str(organization_id),
            "year": year,
            "created_codes": created,
        },
    )
    return created
