"""Domain Layer: models, interfaces and exceptions shared by all layers."""
