# Import models so Base metadata is aware of them
from .auth import User  # noqa: F401
from .billing import Subscription, SubscriptionStatus  # noqa: F401
from .usage import GenerationUsage  # noqa: F401
