"""Users app package.

Defines the custom user model (players, court owners and administrators).
Use ``apps.users.models.CustomUser`` as the AUTH_USER_MODEL throughout
the project.
"""
