from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import MetaData

# Constraint names follow the existing production schema (devices_pkey,
# cue_steps_cue_id_fkey, cue_step_devices_cue_step_id_device_id_key, ...)
convention = {
    "ix": "%(table_name)s_%(column_0_N_name)s_idx",
    "uq": "%(table_name)s_%(column_0_N_name)s_key",
    "ck": "%(table_name)s_%(constraint_name)s_check",
    "fk": "%(table_name)s_%(column_0_name)s_fkey",
    "pk": "%(table_name)s_pkey",
}

class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=convention)
