"""Users app package.

Guests book stays with their platform account. The app defines the custom
user model (e-mail login, optional phone) used as AUTH_USER_MODEL
throughout the project.
"""
