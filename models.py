from sqlalchemy import Column, Integer, String, DateTime, JSON
from config import Base

class EstimateRecord(Base):
    __tablename__ = "estimate_records"
    row_id = Column(Integer, primary_key=True, index=True)  # insertion order
    id = Column(String(36), unique=True, index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    client_name = Column(String, nullable=True)
    params = Column(JSON)    # payload exactly as submitted
    estimate = Column(JSON)  # computed inputs / line_items / summary / params
