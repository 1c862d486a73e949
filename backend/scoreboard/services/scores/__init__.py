"""Score domain services: the board value type and the update path.

Imported by HTTP routes and socket handlers so transport concerns stay
separate from the read-modify-write logic.
"""
