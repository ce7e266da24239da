from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, func
from app.models.base import Base


class Outturn(Base):
    """One milling run of a paddy variety (production batch)."""

    __tablename__ = "outturns"

    outturn_id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), unique=True, nullable=False)
    allotted_variety = Column(String(150), nullable=True)
    type = Column(String(50), nullable=True)  # Raw/Steam

    is_cleared = Column(Boolean, nullable=False, default=False)
    cleared_at = Column(Date, nullable=True)
    cleared_by = Column(String(150), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
