"""Services - business logic"""
