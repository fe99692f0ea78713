"""Flask extensions for the application."""

from flask_wtf.csrf import CSRFProtect

from .core.mutation import MutationCoordinator

csrf = CSRFProtect()
mutations = MutationCoordinator()
