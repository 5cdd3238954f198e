"""typedrpc: typed, self-describing RPC over a Unix domain socket."""

from typedrpc.types import Request, Response, TypedValue, TypeTag

__version__ = "0.1.0"

__all__ = ["Request", "Response", "TypeTag", "TypedValue", "__version__"]
