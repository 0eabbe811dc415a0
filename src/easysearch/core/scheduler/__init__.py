from .coordinator import RequestCoordinator

__all__ = ["RequestCoordinator"]
