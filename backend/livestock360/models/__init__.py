from livestock360.models.user import User
from livestock360.models.refresh_token import RefreshToken
from livestock360.models.animal import Animal, AnimalGender, AnimalStatus, AnimalType
from livestock360.models.health_record import HealthRecord, RecordStatus, RecordType

__all__ = [
    'User',
    'RefreshToken',
    'Animal',
    'AnimalGender',
    'AnimalStatus',
    'AnimalType',
    'HealthRecord',
    'RecordStatus',
    'RecordType',
]
