from sqlalchemy import Column, Integer, String, Numeric, Date, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from app.models.base import Base


class Arrival(Base):
    """A dated paddy movement: purchase, shifting, production shifting or dispatch."""

    __tablename__ = "arrivals"

    arrival_id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=True, index=True)
    movement_type = Column(String(40), nullable=False)  # purchase/shifting/production-shifting/...
    variety = Column(String(150), nullable=True)
    bags = Column(Integer, nullable=False, default=0)
    net_weight = Column(Numeric(12, 2), nullable=True)
    broker = Column(String(150), nullable=True)
    lorry_number = Column(String(50), nullable=True)

    from_kunchinittu_id = Column(Integer, ForeignKey("kunchinittus.kunchinittu_id"), nullable=True)
    from_warehouse_id = Column(Integer, ForeignKey("warehouses.warehouse_id"), nullable=True)
    to_kunchinittu_id = Column(Integer, ForeignKey("kunchinittus.kunchinittu_id"), nullable=True)
    to_warehouse_id = Column(Integer, ForeignKey("warehouses.warehouse_id"), nullable=True)
    outturn_id = Column(Integer, ForeignKey("outturns.outturn_id"), nullable=True)

    status = Column(String(20), nullable=False, default="pending")  # pending/approved/rejected
    approved_by = Column(String(150))
    approved_at = Column(DateTime(timezone=True))
    admin_approved_by = Column(String(150))
    admin_approved_at = Column(DateTime(timezone=True))

    created_by = Column(String(150))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    from_kunchinittu = relationship("Kunchinittu", foreign_keys=[from_kunchinittu_id])
    from_warehouse = relationship("Warehouse", foreign_keys=[from_warehouse_id])
    to_kunchinittu = relationship("Kunchinittu", foreign_keys=[to_kunchinittu_id])
    to_warehouse = relationship("Warehouse", foreign_keys=[to_warehouse_id])
    outturn = relationship("Outturn")
