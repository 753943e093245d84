from .inventory_hook import MaterialUpdate, confirm_sale_stock, material_updates_for_sale

__all__ = [
    "MaterialUpdate",
    "confirm_sale_stock",
    "material_updates_for_sale",
]
