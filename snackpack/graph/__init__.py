from .traversal import GraphBuilder

__all__ = ["GraphBuilder"]
