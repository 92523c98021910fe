from .ledger import SheetRow
from .catalog import Worker, ServiceItem

__all__ = [
    'SheetRow',
    'Worker', 'ServiceItem',
]
