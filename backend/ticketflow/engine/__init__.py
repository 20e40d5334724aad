"""Workflow engine - transition resolution, guards, actions and orchestration"""
