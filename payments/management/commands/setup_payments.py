from django.core.management.base import BaseCommand
from django.conf import settings
from django.core.cache import cache


class Command(BaseCommand):
    help = 'Check payment gateway, email and cache configuration'

    def handle(self, *args, **options):
        self.stdout.write(self.style.SUCCESS('Movie Reservation Payment Setup'))
        self.stdout.write('=' * 50)

        key_id = getattr(settings, 'RAZORPAY_KEY_ID', '')
        if key_id and getattr(settings, 'RAZORPAY_KEY_SECRET', ''):
            self.stdout.write(self.style.SUCCESS('✓ Razorpay configured'))
            self.stdout.write(f'   Key ID: {key_id[:10]}...')
        else:
            self.stdout.write(self.style.WARNING('⚠ Razorpay not configured, payments run in mock mode'))
            self.stdout.write('   Add to .env file:')
            self.stdout.write('   RAZORPAY_KEY_ID=rzp_test_xxxxxxxxxxxxx')
            self.stdout.write('   RAZORPAY_KEY_SECRET=xxxxxxxxxxxxxxxxxxxxxxxx')

        if getattr(settings, 'RAZORPAY_WEBHOOK_SECRET', ''):
            self.stdout.write(self.style.SUCCESS('✓ Webhook secret configured'))
            self.stdout.write('   Point the Razorpay dashboard webhook at /api/Webhook/razorpay')
        else:
            self.stdout.write(self.style.WARNING('⚠ RAZORPAY_WEBHOOK_SECRET not set, live webhooks will be rejected'))

        if getattr(settings, 'SENDGRID_API_KEY', ''):
            self.stdout.write(self.style.SUCCESS('✓ Email configured (SendGrid)'))
            self.stdout.write(f'   From: {settings.DEFAULT_FROM_EMAIL}')
        else:
            self.stdout.write(self.style.WARNING('⚠ Email not configured, messages go to the console'))
            self.stdout.write('   Add SENDGRID_API_KEY to the .env file')

        try:
            cache.set('setup_payments:ping', 'pong', timeout=5)
            if cache.get('setup_payments:ping') == 'pong':
                self.stdout.write(self.style.SUCCESS(f"✓ Cache reachable ({settings.CACHES['default']['BACKEND']})"))
            else:
                self.stdout.write(self.style.ERROR('✗ Cache did not return the test value'))
        except Exception as e:
            self.stdout.write(self.style.ERROR(f'✗ Cache not reachable: {str(e)}'))

        self.stdout.write('=' * 50)
        self.stdout.write(self.style.SUCCESS('Setup check complete!'))
