# Import every model so Base.metadata knows all tables before create_all.
from app.models.user import User
from app.models.product import Product
from app.models.cart_item import CartItem
from app.models.address import Address
from app.models.promo_code import PromoCode
from app.models.invoice_settings import InvoiceSettings
from app.models.order import Order, OrderItem
