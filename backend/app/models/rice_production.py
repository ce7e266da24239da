from sqlalchemy import Column, Integer, String, Numeric, Date, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from app.models.base import Base


class Packaging(Base):
    __tablename__ = "packagings"

    packaging_id = Column(Integer, primary_key=True, index=True)
    brand_name = Column(String(150), nullable=False)
    code = Column(String(50), unique=True, nullable=False)
    allotted_kg = Column(Numeric(8, 2), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class RiceProduction(Base):
    """Finished product made from an outturn, stored (kunchinittu) or dispatched (loading)."""

    __tablename__ = "rice_productions"

    rice_production_id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=True, index=True)
    outturn_id = Column(Integer, ForeignKey("outturns.outturn_id"), nullable=False)
    product_type = Column(String(50), nullable=False)
    bags = Column(Integer, nullable=False, default=0)
    quantity_quintals = Column(Numeric(12, 3), nullable=False, default=0)
    paddy_bags_deducted = Column(Integer, nullable=False, default=0)
    packaging_id = Column(Integer, ForeignKey("packagings.packaging_id"), nullable=True)

    movement_type = Column(String(20), nullable=False, default="kunchinittu")  # kunchinittu/loading
    location_code = Column(String(50), nullable=True)  # CLEARING marks an outturn write-off
    lorry_number = Column(String(50), nullable=True)
    bill_number = Column(String(50), nullable=True)

    status = Column(String(20), nullable=False, default="pending")  # pending/approved/rejected
    approved_by = Column(String(150))
    approved_at = Column(DateTime(timezone=True))

    created_by = Column(String(150))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    outturn = relationship("Outturn")
    packaging = relationship("Packaging")
