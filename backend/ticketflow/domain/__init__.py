"""Domain layer - enums, errors, and models"""
