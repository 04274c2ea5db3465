from .api import Api, export_api
from .config import Stage

__all__ = ["Api", "Stage", "export_api"]
