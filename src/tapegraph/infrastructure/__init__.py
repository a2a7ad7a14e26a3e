"""
NumPy-backed infrastructure layer: tensor values, broadcast resolution,
graph bookkeeping, broadcast operators, and the tape machine.
"""
