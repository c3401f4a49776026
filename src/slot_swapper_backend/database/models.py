from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKeyConstraint, Index, PrimaryKeyConstraint, String, Text, UniqueConstraint, Uuid, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
import datetime
import uuid

from ..common.time_utils import utcnow
from .db_enums import SlotStatus, SwapStatus


class Base(DeclarativeBase):
    pass




slot_status_enum = Enum(*[s.value for s in SlotStatus], name='slot_status_enum')
swap_status_enum = Enum(*[s.value for s in SwapStatus], name='swap_status_enum')


class Users(Base):
    __tablename__ = 'users'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='users_pkey'),
        UniqueConstraint('email', name='users_email_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100))
    email: Mapped[str] = mapped_column(String(255))
    password: Mapped[str] = mapped_column(String(255))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=utcnow)

    slots: Mapped[list['Slots']] = relationship('Slots', back_populates='owner')


class Slots(Base):
    __tablename__ = 'slots'
    __table_args__ = (
        ForeignKeyConstraint(['owner_id'], ['users.id'], ondelete='CASCADE', name='slots_owner_id_fkey'),
        PrimaryKeyConstraint('id', name='slots_pkey'),
        CheckConstraint('end_time > start_time', name='slots_valid_time_range'),
        Index('idx_slots_owner_status', 'owner_id', 'status'),
        Index('idx_slots_start_time', 'start_time')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    title: Mapped[str] = mapped_column(String(100))
    start_time: Mapped[datetime.datetime] = mapped_column(DateTime(True))
    end_time: Mapped[datetime.datetime] = mapped_column(DateTime(True))
    status: Mapped[str] = mapped_column(slot_status_enum, server_default=text("'BUSY'"), default=SlotStatus.BUSY.value)
    description: Mapped[Optional[str]] = mapped_column(String(500))
    location: Mapped[Optional[str]] = mapped_column(String(200))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=utcnow, onupdate=utcnow)

    owner: Mapped['Users'] = relationship('Users', back_populates='slots')

    @property
    def duration_minutes(self) -> int:
        return int((self.end_time - self.start_time).total_seconds() // 60)


class SwapRequests(Base):
    __tablename__ = 'swap_requests'
    __table_args__ = (
        ForeignKeyConstraint(['requester_id'], ['users.id'], ondelete='CASCADE', name='swap_requests_requester_id_fkey'),
        ForeignKeyConstraint(['requested_user_id'], ['users.id'], ondelete='CASCADE', name='swap_requests_requested_user_id_fkey'),
        ForeignKeyConstraint(['my_slot_id'], ['slots.id'], ondelete='SET NULL', name='swap_requests_my_slot_id_fkey'),
        ForeignKeyConstraint(['their_slot_id'], ['slots.id'], ondelete='SET NULL', name='swap_requests_their_slot_id_fkey'),
        PrimaryKeyConstraint('id', name='swap_requests_pkey'),
        CheckConstraint('requester_id <> requested_user_id', name='swap_requests_no_self_swap'),
        CheckConstraint('my_slot_id IS NULL OR their_slot_id IS NULL OR my_slot_id <> their_slot_id', name='swap_requests_distinct_slots'),
        Index('idx_swap_requests_requested_user_status', 'requested_user_id', 'status'),
        Index('idx_swap_requests_requester_status', 'requester_id', 'status'),
        # At most one PENDING record per (requester, recipient, offered, wanted)
        Index(
            'uq_swap_requests_pending',
            'requester_id', 'requested_user_id', 'my_slot_id', 'their_slot_id',
            unique=True,
            postgresql_where=text("status = 'PENDING'"),
            sqlite_where=text("status = 'PENDING'")
        )
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    requester_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    requested_user_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    my_slot_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    their_slot_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    status: Mapped[str] = mapped_column(swap_status_enum, server_default=text("'PENDING'"), default=SwapStatus.PENDING.value)
    message: Mapped[str] = mapped_column(Text, default='')
    responded_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(True))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=utcnow)

    requester: Mapped['Users'] = relationship('Users', foreign_keys=[requester_id])
    requested_user: Mapped['Users'] = relationship('Users', foreign_keys=[requested_user_id])
    my_slot: Mapped[Optional['Slots']] = relationship('Slots', foreign_keys=[my_slot_id])
    their_slot: Mapped[Optional['Slots']] = relationship('Slots', foreign_keys=[their_slot_id])


class CancelledSwapRequests(Base):
    """
    Marker left behind by a cancelled request, whose row is deleted. Lets a
    later respond / cancel on the same id tell "cancelled" from "never existed".
    """
    __tablename__ = 'cancelled_swap_requests'
    __table_args__ = (
        ForeignKeyConstraint(['requester_id'], ['users.id'], ondelete='CASCADE', name='cancelled_swap_requests_requester_id_fkey'),
        ForeignKeyConstraint(['requested_user_id'], ['users.id'], ondelete='CASCADE', name='cancelled_swap_requests_requested_user_id_fkey'),
        PrimaryKeyConstraint('request_id', name='cancelled_swap_requests_pkey')
    )

    request_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    requester_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    requested_user_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    cancelled_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=utcnow)
