"""Domain Event definitions.

Represents significant occurrences during an API call that other parts
of the system might react to (currently only logged).
"""
