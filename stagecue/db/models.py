from datetime import datetime
from decimal import Decimal
from sqlalchemy.dialects.postgresql import JSONB, ARRAY
from sqlalchemy import Integer, Numeric, String, Text, DateTime, Boolean, text, func, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stagecue.db.base import Base


# ---------- Devices & Presets ----------
class Device(Base):
    __tablename__ = "devices"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    ip_address: Mapped[str] = mapped_column(String(45), nullable=False, unique=True, index=True)
    mac_address: Mapped[str | None] = mapped_column(String(17))
    last_seen: Mapped["datetime | None"] = mapped_column(DateTime)
    device_info: Mapped[dict | None] = mapped_column(JSONB)
    created_at: Mapped["datetime"] = mapped_column(DateTime, server_default=text('now()'))
    updated_at: Mapped["datetime"] = mapped_column(DateTime, server_default=text('now()'), onupdate=func.now())

    presets: Mapped[list["Preset"]] = relationship(back_populates="device")

class Preset(Base):
    __tablename__ = "presets"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    color: Mapped[list[int]] = mapped_column(ARRAY(Integer), default=list, nullable=False)  # [R, G, B, W]
    brightness: Mapped[int] = mapped_column(Integer, nullable=False)  # 1-255
    device_id: Mapped[int | None] = mapped_column(ForeignKey("devices.id", ondelete="SET NULL"), index=True)
    user_id: Mapped[int | None] = mapped_column(Integer, index=True)
    created_at: Mapped["datetime"] = mapped_column(DateTime, server_default=text('now()'))
    updated_at: Mapped["datetime"] = mapped_column(DateTime, server_default=text('now()'), onupdate=func.now())

    device: Mapped[Device | None] = relationship(back_populates="presets")


# ---------- Shows & Cues ----------
class Show(Base):
    __tablename__ = "shows"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    user_id: Mapped[int | None] = mapped_column(Integer, index=True)
    created_at: Mapped["datetime"] = mapped_column(DateTime, server_default=text('now()'))
    updated_at: Mapped["datetime"] = mapped_column(DateTime, server_default=text('now()'), onupdate=func.now())

    cues: Mapped[list["Cue"]] = relationship(back_populates="show", cascade="all, delete-orphan")
    cue_lists: Mapped[list["CueList"]] = relationship(back_populates="show", cascade="all, delete-orphan")

class Cue(Base):
    __tablename__ = "cues"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    show_id: Mapped[int] = mapped_column(ForeignKey("shows.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    user_id: Mapped[int | None] = mapped_column(Integer, index=True)
    created_at: Mapped["datetime"] = mapped_column(DateTime, server_default=text('now()'))
    updated_at: Mapped["datetime"] = mapped_column(DateTime, server_default=text('now()'), onupdate=func.now())

    show: Mapped[Show] = relationship(back_populates="cues")
    cue_steps: Mapped[list["CueStep"]] = relationship(
        back_populates="cue", cascade="all, delete-orphan", order_by="CueStep.order"
    )

class CueStep(Base):
    __tablename__ = "cue_steps"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    cue_id: Mapped[int] = mapped_column(ForeignKey("cues.id", ondelete="CASCADE"), nullable=False, index=True)
    order: Mapped[int] = mapped_column(Integer, nullable=False)
    time_offset: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)  # seconds from cue start
    transition_duration: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)  # seconds
    target_color: Mapped[list[int]] = mapped_column(ARRAY(Integer), default=list, nullable=False)  # empty = no color change
    target_brightness: Mapped[int | None] = mapped_column(Integer)
    start_color: Mapped[list[int]] = mapped_column(ARRAY(Integer), default=list, nullable=False)  # empty = live device color
    start_brightness: Mapped[int | None] = mapped_column(Integer)
    turn_off: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped["datetime"] = mapped_column(DateTime, server_default=text('now()'))
    updated_at: Mapped["datetime"] = mapped_column(DateTime, server_default=text('now()'), onupdate=func.now())

    cue: Mapped[Cue] = relationship(back_populates="cue_steps")
    cue_step_devices: Mapped[list["CueStepDevice"]] = relationship(back_populates="cue_step", cascade="all, delete-orphan")

    __table_args__ = (
        Index("cue_steps_cue_id_order_idx", "cue_id", "order"),
    )

class CueStepDevice(Base):
    __tablename__ = "cue_step_devices"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    cue_step_id: Mapped[int] = mapped_column(ForeignKey("cue_steps.id", ondelete="CASCADE"), nullable=False, index=True)
    device_id: Mapped[int] = mapped_column(ForeignKey("devices.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at: Mapped["datetime"] = mapped_column(DateTime, server_default=text('now()'))

    cue_step: Mapped[CueStep] = relationship(back_populates="cue_step_devices")
    device: Mapped[Device] = relationship()

    __table_args__ = (
        UniqueConstraint("cue_step_id", "device_id", name="cue_step_devices_cue_step_id_device_id_key"),
    )


# ---------- Cue Lists ----------
class CueList(Base):
    __tablename__ = "cue_lists"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    show_id: Mapped[int] = mapped_column(ForeignKey("shows.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    user_id: Mapped[int | None] = mapped_column(Integer, index=True)
    current_position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped["datetime"] = mapped_column(DateTime, server_default=text('now()'))
    updated_at: Mapped["datetime"] = mapped_column(DateTime, server_default=text('now()'), onupdate=func.now())

    show: Mapped[Show] = relationship(back_populates="cue_lists")
    cue_list_cues: Mapped[list["CueListCue"]] = relationship(
        back_populates="cue_list", cascade="all, delete-orphan", order_by="CueListCue.order"
    )

class CueListCue(Base):
    __tablename__ = "cue_list_cues"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    cue_list_id: Mapped[int] = mapped_column(ForeignKey("cue_lists.id", ondelete="CASCADE"), nullable=False, index=True)
    cue_id: Mapped[int] = mapped_column(ForeignKey("cues.id", ondelete="CASCADE"), nullable=False, index=True)
    order: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped["datetime"] = mapped_column(DateTime, server_default=text('now()'))

    cue_list: Mapped[CueList] = relationship(back_populates="cue_list_cues")
    cue: Mapped[Cue] = relationship()

    __table_args__ = (
        UniqueConstraint("cue_list_id", "cue_id", name="cue_list_cues_cue_list_id_cue_id_key"),
        UniqueConstraint("cue_list_id", "order", name="cue_list_cues_cue_list_id_order_key"),
    )
