from .exploration_engine import ExplorationEngine

__all__ = ['ExplorationEngine']
