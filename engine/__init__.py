"""
Search engine process lifecycle.
"""
from engine.supervisor import EngineStatus, EngineSupervisor

__all__ = ["EngineStatus", "EngineSupervisor"]
