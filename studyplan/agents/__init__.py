"""
Agents Package
--------------
LLM-backed agents.

Available agents:
- PlannerAgent: Generate a day-by-day study plan candidate
"""

from studyplan.agents.planner_agent import PlannerAgent

__all__ = ["PlannerAgent"]
