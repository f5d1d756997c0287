"""
API routers for the Transit Movements Validator.
"""
