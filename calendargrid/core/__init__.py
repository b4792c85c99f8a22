"""Configuration and timezone resolution for calendargrid."""
