"""Domain Layer: value objects, error taxonomy and the interfaces the
infrastructure layer implements. Has no third-party dependencies.
"""
