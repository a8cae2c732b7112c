"""
SQLAlchemy models for the patent portfolio tracker.

This module defines the database schema using SQLAlchemy ORM,
matching the schema defined in Alembic migrations.
"""

from datetime import datetime
from sqlalchemy import (
    JSON, Column, Integer, String, Text, Numeric, TIMESTAMP,
    ForeignKey, CheckConstraint, Index, text
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON everywhere else (SQLite for local use and tests)
JSONType = JSON().with_variant(JSONB(), 'postgresql')

# Columns the spreadsheet importer owns; an upsert replaces all of them
PATENT_FIELDS = (
    'application_number', 'title', 'inventors', 'applicants',
    'filed_date', 'published_date', 'granted_date', 'status',
    'renewal_due_date', 'renewal_fee', 'last_checked',
    'ipindia_status_url', 'google_drive_link', 'patent_number',
    'patent_certificate', 'raw_metadata', 'created_at', 'updated_at'
)


class Patent(Base):
    """One tracked patent application (one spreadsheet row)."""

    __tablename__ = 'patents'
    __table_args__ = (
        Index('idx_patents_application_number', 'application_number'),
        Index('idx_patents_status', 'status'),
        Index('idx_patents_filed_date', 'filed_date'),
        Index('idx_patents_renewal_due_date', 'renewal_due_date'),
        Index('idx_patents_title', 'title'),
        {'comment': 'Tracked patent applications'}
    )

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        nullable=False
    )
    application_number = Column(
        String(64),
        nullable=False,
        comment='Natural key used to reconcile spreadsheet rows'
    )
    title = Column(Text, nullable=False, server_default='', default='')
    inventors = Column(Text, nullable=False, server_default='', default='')
    applicants = Column(Text, nullable=False, server_default='', default='')
    filed_date = Column(
        String(10),
        nullable=True,
        comment='ISO date YYYY-MM-DD'
    )
    published_date = Column(String(10), nullable=True, comment='ISO date YYYY-MM-DD')
    granted_date = Column(String(10), nullable=True, comment='ISO date YYYY-MM-DD')
    status = Column(
        String(255),
        nullable=False,
        server_default='Filed',
        default='Filed',
        comment='Free-text prosecution status, e.g. Filed, AE, Granted'
    )
    renewal_due_date = Column(String(10), nullable=True, comment='ISO date YYYY-MM-DD')
    renewal_fee = Column(
        Numeric(precision=12, scale=2),
        nullable=True,
        comment='Renewal fee; never populated by the importer'
    )
    last_checked = Column(TIMESTAMP, nullable=True)
    ipindia_status_url = Column(String(512), nullable=True)
    google_drive_link = Column(
        String(1024),
        nullable=True,
        comment='Hyperlink embedded in the application number cell'
    )
    patent_number = Column(String(128), nullable=True)
    patent_certificate = Column(Text, nullable=True)
    raw_metadata = Column(
        JSONType,
        nullable=False,
        default=dict,
        comment='Source row provenance: serial no, provisional marker, remarks, agent, details, full row'
    )
    created_at = Column(
        TIMESTAMP,
        default=datetime.utcnow,
        server_default=text('CURRENT_TIMESTAMP'),
        nullable=False
    )
    updated_at = Column(
        TIMESTAMP,
        default=datetime.utcnow,
        server_default=text('CURRENT_TIMESTAMP'),
        nullable=False
    )

    # Relationships
    payments = relationship(
        'RenewalPayment',
        back_populates='patent',
        cascade='all, delete-orphan',
        order_by='RenewalPayment.payment_date'
    )
    change_logs = relationship('ChangeLog', back_populates='patent', cascade='all, delete-orphan')

    def __repr__(self):
        return f"<Patent(id={self.id}, application_number='{self.application_number}', status='{self.status}')>"

    def to_dict(self) -> dict:
        """Convert patent to dictionary representation."""
        return {
            'id': self.id,
            'application_number': self.application_number,
            'title': self.title,
            'inventors': self.inventors,
            'applicants': self.applicants,
            'filed_date': self.filed_date,
            'published_date': self.published_date,
            'granted_date': self.granted_date,
            'status': self.status,
            'renewal_due_date': self.renewal_due_date,
            'renewal_fee': float(self.renewal_fee) if self.renewal_fee is not None else None,
            'last_checked': self.last_checked.isoformat() if self.last_checked else None,
            'ipindia_status_url': self.ipindia_status_url,
            'google_drive_link': self.google_drive_link,
            'patent_number': self.patent_number,
            'patent_certificate': self.patent_certificate,
            'raw_metadata': self.raw_metadata,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }


class RenewalPayment(Base):
    """A renewal fee payment recorded against a patent."""

    __tablename__ = 'renewal_payments'
    __table_args__ = (
        CheckConstraint('amount >= 0', name='renewal_payments_amount_check'),
        Index('idx_renewal_payments_patent_id', 'patent_id'),
        Index('idx_renewal_payments_payment_date', 'payment_date'),
        {'comment': 'Renewal fee payment history'}
    )

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        nullable=False
    )
    patent_id = Column(
        Integer,
        ForeignKey('patents.id', ondelete='CASCADE'),
        nullable=False
    )
    payment_date = Column(String(10), nullable=False, comment='ISO date YYYY-MM-DD')
    amount = Column(Numeric(precision=12, scale=2), nullable=False)
    payment_method = Column(String(255), nullable=False)
    notes = Column(Text, nullable=False, server_default='', default='')
    created_at = Column(
        TIMESTAMP,
        default=datetime.utcnow,
        server_default=text('CURRENT_TIMESTAMP'),
        nullable=False
    )

    patent = relationship('Patent', back_populates='payments')

    def __repr__(self):
        return f"<RenewalPayment(id={self.id}, patent_id={self.patent_id}, amount={self.amount})>"

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'patent_id': self.patent_id,
            'payment_date': self.payment_date,
            'amount': float(self.amount),
            'payment_method': self.payment_method,
            'notes': self.notes,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }


class ChangeLog(Base):
    """
    Field-level change history for a patent.

    The table is part of the schema but nothing writes to it yet.
    """

    __tablename__ = 'change_logs'
    __table_args__ = (
        Index('idx_change_logs_patent_id', 'patent_id'),
        Index('idx_change_logs_timestamp', 'timestamp'),
        {'comment': 'Patent change history'}
    )

    id = Column(Integer, primary_key=True, autoincrement=True, nullable=False)
    patent_id = Column(
        Integer,
        ForeignKey('patents.id', ondelete='CASCADE'),
        nullable=False
    )
    changed_by = Column(String(255), nullable=True)
    change_type = Column(String(50), nullable=False)
    old_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)
    timestamp = Column(
        TIMESTAMP,
        default=datetime.utcnow,
        server_default=text('CURRENT_TIMESTAMP'),
        nullable=False
    )

    patent = relationship('Patent', back_populates='change_logs')

    def __repr__(self):
        return f"<ChangeLog(id={self.id}, patent_id={self.patent_id}, type='{self.change_type}')>"
