from __future__ import annotations

from datetime import date as date_type, datetime
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, server_default=func.now())


class Customer(Base):
    __tablename__ = "customers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    vat_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)


class Article(Base):
    __tablename__ = "articles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    code: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    unit: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    unit_price: Mapped[float] = mapped_column(Numeric(12, 4), nullable=False, default=0)
    vat: Mapped[float] = mapped_column(Numeric(6, 2), nullable=False, default=22)


class CompanySettings(Base):
    __tablename__ = "settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), unique=True, nullable=False)

    company_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    company_address: Mapped[str] = mapped_column(Text, nullable=False, default="")
    company_vat: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    company_email: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    company_phone: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    bank_info: Mapped[str] = mapped_column(Text, nullable=False, default="")
    logo_data: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    logo_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    signature_image: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    signature_scale: Mapped[Optional[float]] = mapped_column(Numeric(6, 2), nullable=True)

    contract_pages_text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    quote_number_prefix: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    next_quote_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    default_vat: Mapped[float] = mapped_column(Numeric(6, 2), nullable=False, default=22)

    default_hardware_image: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    default_hardware_image_height: Mapped[Optional[float]] = mapped_column(Numeric(8, 2), nullable=True)
    default_software_image: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    default_software_image_scale: Mapped[Optional[float]] = mapped_column(Numeric(6, 2), nullable=True)
    default_target_image: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    default_target_image_scale: Mapped[Optional[float]] = mapped_column(Numeric(6, 2), nullable=True)
    default_product_image_scale: Mapped[Optional[float]] = mapped_column(Numeric(6, 2), nullable=True)
    default_product_image_max_height: Mapped[Optional[float]] = mapped_column(Numeric(8, 2), nullable=True)

    attachments_position: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    attachment_layout: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)


class Quote(Base):
    __tablename__ = "quotes"
    __table_args__ = (UniqueConstraint("owner_user_id", "number", name="uq_quotes_owner_number"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    number: Mapped[str] = mapped_column(String(64), nullable=False)
    date: Mapped[date_type] = mapped_column(Date, nullable=False)

    # Customer snapshot, copied at creation time
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_address: Mapped[str] = mapped_column(Text, nullable=False, default="")
    customer_vat: Mapped[str] = mapped_column(String(64), nullable=False, default="")

    subtotal: Mapped[float] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    vat_total: Mapped[float] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    total: Mapped[float] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    leasing: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)

    attachments_position: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    toc_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    toc_text_below: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    premise_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    premise_hardware_images: Mapped[Optional[list[str]]] = mapped_column(JSON, nullable=True)
    premise_hardware_image_height: Mapped[Optional[float]] = mapped_column(Numeric(8, 2), nullable=True)
    software_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    software_images: Mapped[Optional[list[str]]] = mapped_column(JSON, nullable=True)
    software_image_height: Mapped[Optional[float]] = mapped_column(Numeric(8, 2), nullable=True)
    software_image_scale: Mapped[Optional[float]] = mapped_column(Numeric(6, 2), nullable=True)
    target_audience_images: Mapped[Optional[list[str]]] = mapped_column(JSON, nullable=True)
    target_audience_image_height: Mapped[Optional[float]] = mapped_column(Numeric(8, 2), nullable=True)
    target_audience_image_scale: Mapped[Optional[float]] = mapped_column(Numeric(6, 2), nullable=True)
    product_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    product_images: Mapped[Optional[list[dict[str, Any]]]] = mapped_column(JSON, nullable=True)
    product_image_scale: Mapped[Optional[float]] = mapped_column(Numeric(6, 2), nullable=True)
    product_image_max_height: Mapped[Optional[float]] = mapped_column(Numeric(8, 2), nullable=True)
    product_images_fit: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    supply_conditions: Mapped[Optional[list[str]]] = mapped_column(JSON, nullable=True)
    show_totals: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    show_bank_info: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, server_default=func.now())
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, index=True)

    lines: Mapped[list["QuoteLine"]] = relationship(
        back_populates="quote", cascade="all, delete-orphan", order_by="QuoteLine.position"
    )
    attachments: Mapped[list["QuoteAttachment"]] = relationship(
        back_populates="quote", cascade="all, delete-orphan", order_by="QuoteAttachment.position"
    )


class QuoteLine(Base):
    __tablename__ = "quote_lines"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    quote_id: Mapped[int] = mapped_column(ForeignKey("quotes.id"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    article_id: Mapped[Optional[int]] = mapped_column(ForeignKey("articles.id"), nullable=True)

    # Snapshot fields to preserve historical pricing
    code: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[float] = mapped_column(Numeric(12, 4), nullable=False, default=1)
    unit_price: Mapped[float] = mapped_column(Numeric(12, 4), nullable=False, default=0)
    vat: Mapped[float] = mapped_column(Numeric(6, 2), nullable=False, default=0)
    total: Mapped[float] = mapped_column(Numeric(14, 2), nullable=False, default=0)

    quote: Mapped["Quote"] = relationship(back_populates="lines")


class QuoteAttachment(Base):
    __tablename__ = "quote_attachments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    quote_id: Mapped[int] = mapped_column(ForeignKey("quotes.id"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    image_data: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_position: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    image_height: Mapped[Optional[float]] = mapped_column(Numeric(8, 2), nullable=True)
    description_font_size: Mapped[Optional[float]] = mapped_column(Numeric(6, 2), nullable=True)
    description_color: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    show_title: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    full_page_image: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)

    quote: Mapped["Quote"] = relationship(back_populates="attachments")
