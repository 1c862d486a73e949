"""Domain services shared by HTTP routes and socket handlers."""
