"""Shared imports for all model modules."""
import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, Text, Integer, BigInteger, Boolean, Float,
    DateTime, ForeignKey, UniqueConstraint, CheckConstraint, Index, Uuid
)
from sqlalchemy.orm import relationship
from brandscope.database import Base
