from .worklets import WorkletTransform

__all__ = ["WorkletTransform"]
