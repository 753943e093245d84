APP_NAME = "Workshop Inventory"

DATA_DIR = "data"
DB_FILE_NAME = "workshop.db"
AUDIT_LOG_FILE_NAME = "stock_audit.log"

TABLE_SCHEMA_VERSION = "schema_version"
TABLE_COLLECTIONS = "kv_collections"
SCHEMA_VERSION = "1.0.0"

# collection keys
MATERIALS_KEY = "inventory_materials"
TRANSACTIONS_KEY = "inventory_transactions"
WORKERS_KEY = "inventory_workers"
SOFA_MODELS_KEY = "inventory_sofa_models"

TXN_IN = "in"
TXN_OUT = "out"
TXN_TYPES = (TXN_IN, TXN_OUT)
