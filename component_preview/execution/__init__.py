"""
Expression execution: import roots, synthetic units, boundaries and the coordinator.
"""
