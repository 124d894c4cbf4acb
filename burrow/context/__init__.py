from burrow.context.builder import ContextBuilder

__all__ = ["ContextBuilder"]
