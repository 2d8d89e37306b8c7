from historybox.models.memory import Memory
from historybox.models.payment import CoinPayment
from historybox.models.region import Region
from historybox.models.region_unlock import RegionUnlock
from historybox.models.user import User

__all__ = ["CoinPayment", "Memory", "Region", "RegionUnlock", "User"]
