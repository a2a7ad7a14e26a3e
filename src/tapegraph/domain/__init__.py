"""
Backend-agnostic domain layer: value/operator interfaces, shape types,
errors, and the state-dispatch utility.
"""
