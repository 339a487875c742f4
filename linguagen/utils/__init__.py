from linguagen.utils.tasks import TaskRegistry

__all__ = ["TaskRegistry"]
