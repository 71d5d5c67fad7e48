"""Match services: physics, tick driver, broadcast and session operations.

This package holds the simulation and lobby logic that socket handlers
call into, keeping Socket.IO wiring separate from the game mechanics.
"""
