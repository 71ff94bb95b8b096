# Import models here so Alembic can discover metadata.
from distrohub.models.user import User  # noqa: F401

# Tenancy
from distrohub.models.company import Company  # noqa: F401

# Dealer ledger
from distrohub.models.dealer_group import DealerGroup  # noqa: F401
from distrohub.models.dealer import Dealer, DealerTransaction  # noqa: F401
from distrohub.models.order import Order  # noqa: F401
