"""Ship session domain services: roles, hazards, ticking, voting and scoring.

This package contains the game rules and the session state machine. It
talks to participants only through a ``Broadcaster``, keeping transport
concerns separated from core game mechanics.
"""
