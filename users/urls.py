"""User routes under /api/v1/.

Sign-up and password flows live outside this service; these endpoints only
issue and refresh tokens for API clients and expose the current profile.
"""

from django.urls import path

from .views import RefreshView, SignInView, current_user

urlpatterns = [
    path("auth/token/", SignInView.as_view(), name="token_obtain_pair"),
    path("auth/token/refresh/", RefreshView.as_view(), name="token_refresh"),
    path("users/me/", current_user, name="users-me"),
]
