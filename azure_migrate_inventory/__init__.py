"""Azure Migrate VM Inventory"""

__version__ = "1.0.0"
