from .config import FunctionDefinition, FunctionOptions, FunctionOptionsDict, RoleDefinition
from .function import export_function

__all__ = [
    "FunctionDefinition",
    "FunctionOptions",
    "FunctionOptionsDict",
    "RoleDefinition",
    "export_function",
]
