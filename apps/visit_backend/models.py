from __future__ import annotations

import enum

from sqlalchemy import JSON, Column, DateTime, Index, String, Text

from common_core.db import Base


class VisitStatus(str, enum.Enum):
    IN = "IN"
    OUT = "OUT"


class Visit(Base):
    __tablename__ = "visits"
    id = Column(String(36), primary_key=True)
    turbine_id = Column(Text, nullable=False, index=True)
    technicians = Column(JSON, nullable=False)  # list[str], never empty
    reason = Column(Text, nullable=True)
    comment = Column(Text, nullable=True)
    power_plant = Column(Text, nullable=True)
    equipment_name = Column(Text, nullable=True)
    maintenance_company = Column(Text, nullable=True)
    status = Column(String(8), nullable=True)  # advisory IN/OUT, see VisitStatus
    malfunction_type = Column(Text, nullable=True)
    check_in = Column(DateTime, nullable=False)
    check_out = Column(DateTime, nullable=True)  # NULL while the visit is active

    __table_args__ = (
        Index("ix_visits_turbine_active", "turbine_id", "check_out"),
        Index("ix_visits_power_plant_active", "power_plant", "check_out"),
        Index("ix_visits_equipment_active", "power_plant", "equipment_name", "check_out"),
    )
