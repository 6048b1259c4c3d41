"""Domain Layer: models, interfaces and events with no infrastructure imports."""
