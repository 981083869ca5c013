"""
Service layer for business logic.

Services own the rules that span several entities; routes stay thin.
"""
