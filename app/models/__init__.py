from app.models.user import User
from app.models.channel import Channel
from app.models.seller import MarketplaceSeller, SellerVerificationStatus
from app.models.product import Product, ProductVariant
from app.models.shipping import ShippingLine, ShippingMethod, shipping_method_channels
from app.models.order import Order, OrderItem
from app.models.payout import PayoutStatus, SellerPayout
from app.models.commission_history import CommissionHistory, CommissionHistoryStatus
from app.models.marketplace_settings import MarketplaceSettings
from app.models.audit_log import AuditLog
