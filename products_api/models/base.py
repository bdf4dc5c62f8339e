# products_api/models/base.py
from datetime import datetime
from pydantic import BaseModel, ConfigDict

class TimeStampedModel(BaseModel):
    """Base model with timestamp fields"""
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
