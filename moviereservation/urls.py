from django.contrib import admin
from django.urls import path, include

from payments.webhooks import razorpay_webhook

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/Account/', include('accounts.urls')),
    path('api/', include('movies.urls')),
    path('api/Reservation/', include('reservations.urls')),
    path('api/Payment/', include('payments.urls')),
    path('api/Webhook/razorpay', razorpay_webhook, name='razorpay_webhook'),
]

handler400 = 'core.error_handlers.handler400'
handler403 = 'core.error_handlers.handler403'
handler404 = 'core.error_handlers.handler404'
handler500 = 'core.error_handlers.handler500'
