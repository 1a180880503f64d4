from .party import Dealership, Manufacturer
from .vehicle import Accessory, Vehicle, VehicleOption
from .customer import Customer
from .promotion import Promotion

__all__ = [
    "Manufacturer",
    "Dealership",
    "Vehicle",
    "VehicleOption",
    "Accessory",
    "Customer",
    "Promotion",
]
