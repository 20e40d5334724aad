"""Repositories - MongoDB data access"""
