from app.repositories.agent_profiles import InMemoryAgentProfilesRepository, MongoAgentProfilesRepository
from app.repositories.farmer_profiles import InMemoryFarmerProfilesRepository, MongoFarmerProfilesRepository
from app.repositories.orders import InMemoryOrdersRepository, MongoOrdersRepository
from app.repositories.products import InMemoryProductsRepository, MongoProductsRepository
from app.repositories.reports import InMemoryReportsRepository, MongoReportsRepository
from app.repositories.shops import InMemoryShopsRepository, MongoShopsRepository
from app.repositories.stock_history import InMemoryStockHistoryRepository, MongoStockHistoryRepository
from app.repositories.suppliers import InMemorySuppliersRepository, MongoSuppliersRepository
from app.repositories.users import InMemoryUsersRepository, MongoUsersRepository

__all__ = [
    "InMemoryAgentProfilesRepository",
    "MongoAgentProfilesRepository",
    "InMemoryFarmerProfilesRepository",
    "MongoFarmerProfilesRepository",
    "InMemoryOrdersRepository",
    "MongoOrdersRepository",
    "InMemoryProductsRepository",
    "MongoProductsRepository",
    "InMemoryReportsRepository",
    "MongoReportsRepository",
    "InMemoryShopsRepository",
    "MongoShopsRepository",
    "InMemoryStockHistoryRepository",
    "MongoStockHistoryRepository",
    "InMemorySuppliersRepository",
    "MongoSuppliersRepository",
    "InMemoryUsersRepository",
    "MongoUsersRepository",
]
