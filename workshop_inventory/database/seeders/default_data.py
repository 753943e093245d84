from ..kv_store import KeyValueStore
from ..repositories.catalog_repo import SofaModelsRepo, WorkersRepo
from ..repositories.materials_repo import MaterialsRepo

DEMO_MATERIALS = [
    # name, category, unit, quantity, min_stock, cost_per_unit, supplier
    ("Foam 2in", "Foam", "sheet", 40, 10, 850, "Uratex"),
    ("Velvet Fabric Grey", "Fabric", "yard", 120, 30, 240, "Textile Hub"),
    ("Pine Frame Wood", "Wood", "board ft", 300, 50, 65, None),
    ("Staple Wire", "Hardware", "box", 12, 5, 180, None),
]
DEMO_WORKERS = ["Ramon", "Lito", "Jessa"]
DEMO_SOFA_MODELS = ["Classic 3-Seater", "L-Shape Sectional", "Accent Chair"]


def seed(store: KeyValueStore) -> bool:
    """
    Fill an empty store with demo materials, workers and sofa models.
    Safe to run repeatedly: does nothing once any material exists.
    """
    materials = MaterialsRepo(store)
    if materials.load_all():
        return False
    with store.transaction():
        for name, category, unit, qty, min_stock, cost, supplier in DEMO_MATERIALS:
            materials.create(name, category, unit, qty, min_stock, cost, supplier)
        workers = WorkersRepo(store)
        for name in DEMO_WORKERS:
            workers.create(name)
        models = SofaModelsRepo(store)
        for name in DEMO_SOFA_MODELS:
            models.create(name)
    return True
