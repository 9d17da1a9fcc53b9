from __future__ import annotations

import enum

from sqlalchemy import JSON, Enum, Float, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from expense_lens.core.models import Base, Timestamped, UUIDPrimaryKey


class ReceiptStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Receipt(UUIDPrimaryKey, Timestamped, Base):
    __tablename__ = "receipts_receipt"

    user_id: Mapped[str] = mapped_column(String(200), index=True)

    file_url: Mapped[str] = mapped_column(String(2048))
    file_name: Mapped[str] = mapped_column(String(512))
    content_type: Mapped[str | None] = mapped_column(String(200), nullable=True)
    byte_size: Mapped[int] = mapped_column(default=0)
    storage_key: Mapped[str] = mapped_column(String(1024), unique=True)

    vendor_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    amount: Mapped[float | None] = mapped_column(Float, nullable=True)
    # ISO date when it could be normalized, otherwise the text printed on the receipt.
    date: Mapped[str | None] = mapped_column(String(64), nullable=True)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    ocr_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    extraction_error: Mapped[str | None] = mapped_column(String(100), nullable=True)

    status: Mapped[ReceiptStatus] = mapped_column(
        Enum(
            ReceiptStatus,
            native_enum=False,
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        default=ReceiptStatus.PENDING,
        index=True,
    )
