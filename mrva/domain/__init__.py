"""Domain layer: entities, value objects, events and errors."""
