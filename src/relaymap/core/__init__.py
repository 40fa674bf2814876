"""Core types shared by the map, the timer and the config layer."""
