import logging

from core.decorators import api_login_required, api_view
from core.responses import api_response, parse_int, parse_json_body
from .services import PaymentService

logger = logging.getLogger(__name__)


@api_view(['POST'])
@api_login_required
def create_payment_intent(request):

    data = parse_json_body(request)
    reservation_id = parse_int(data.get('reservationId'), 'reservationId')

    intent = PaymentService.create_payment_intent(request.user, reservation_id)
    return api_response(intent, message='Payment intent created successfully')


@api_view(['POST'])
@api_login_required
def verify_payment(request, payment_id):

    status = PaymentService.verify_payment(request.user, payment_id)
    return api_response(status, message='Payment status verified')


@api_view(['GET'])
@api_login_required
def payment_detail(request, payment_id):

    status = PaymentService.get_payment(request.user, payment_id)
    return api_response(status, message='Payment retrieved successfully')
