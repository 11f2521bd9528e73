from django.urls import path
from . import views

urlpatterns = [
    path('CreatePaymentIntent', views.create_payment_intent, name='create_payment_intent'),
    path('VerifyPayment/<int:payment_id>', views.verify_payment, name='verify_payment'),
    path('<int:payment_id>', views.payment_detail, name='payment_detail'),
]
