from paidmada.core.exceptions.PaymentException import PaymentError
from paidmada.core.payments.dto.request.paymentrequest import PaymentRequest, TransactionStatusRequest
from paidmada.core.payments.model.gatewayconfig import (
    AirtelMoneyConfig,
    GatewayConfig,
    MockModeConfig,
    MVolaConfig,
    OrangeMoneyConfig,
)
from paidmada.core.payments.model.paynetwork import Network
from paidmada.core.payments.model.paymentstatus import TransactionStatus, TransactionType
from paidmada.core.payments.service.paymentgateway import PaymentGateway
from paidmada.utilities.paidmadaclient import PaidMadaClient, PaidMadaClientError

__version__ = "1.0.0"
