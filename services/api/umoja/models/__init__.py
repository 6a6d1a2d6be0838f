"""SQLAlchemy ORM models.

Models represent database tables:
- users: Farmers, buyers and admins
- listings: Produce offered by farmers
- orders: Purchases moving through payment and fulfillment
- ratings: One buyer rating per completed order
- trust_scores: One composite reputation record per farmer
- price_alerts: Farmer target-price alerts with cooldown state
- price_observations: Append-only price history
"""

from umoja.models.listing import Listing
from umoja.models.order import Order
from umoja.models.price_alert import PriceAlert
from umoja.models.price_observation import PriceObservation
from umoja.models.rating import Rating
from umoja.models.trust_score import TrustScore
from umoja.models.user import User

__all__ = ["Listing", "Order", "PriceAlert", "PriceObservation", "Rating", "TrustScore", "User"]
