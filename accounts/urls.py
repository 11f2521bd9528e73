from django.urls import path
from . import views

urlpatterns = [
    path('Register', views.register, name='register'),
    path('Login', views.login_view, name='login'),
    path('Logout', views.logout_view, name='logout'),
    path('Profile', views.profile, name='profile'),
    path('ChangePassword', views.change_password, name='change_password'),
]
