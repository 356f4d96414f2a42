"""Core togglekit modules: configuration, errors and the feature subsystem."""
