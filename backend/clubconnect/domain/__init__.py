"""Domain services, models and the store abstraction."""
