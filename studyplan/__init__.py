"""
Study Planner
-------------
Generates, validates and keeps an AI-built study plan from a student's
courses, exams, lectures, quizzes and tasks.
"""

__version__ = "0.1.0"
