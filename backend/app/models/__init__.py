from .base import Base
from .location import Warehouse, Kunchinittu
from .outturn import Outturn
from .arrival import Arrival
from .rice_production import Packaging, RiceProduction
