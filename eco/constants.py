"""Global constants for the ECO application."""

# Firestore batch writes are capped at 500 operations
FIRESTORE_BATCH_LIMIT = 400

# Collection names
PROFILES = "profiles"
NEIGHBORHOODS = "neighborhoods"
DROP_POINTS = "eco_drop_points"
ROUTE_WINDOWS = "route_windows"
PICKUP_REQUESTS = "pickup_requests"
PICKUP_PRIVATE = "private"
PICKUP_PRIVATE_DOC = "address"
RECEIPTS = "receipts"
MEDIA_OBJECTS = "media_objects"
POSTS = "posts"
ONBOARDING_STATE = "onboarding_state"
ADDRESS_PROFILES = "pickup_address_profiles"
SUBSCRIPTIONS = "recurring_subscriptions"
NOTIFICATIONS = "user_notifications"
PRICING_RULES = "coop_pricing_rules"
EARNINGS_LEDGER = "coop_earnings_ledger"
EARNING_ADJUSTMENTS = "coop_earning_adjustments"
PAYOUT_PERIODS = "coop_payout_periods"
PAYOUTS = "coop_payouts"
AUDIT_LOG = "admin_audit_log"
PILOT_CONFIGS = "pilot_configs"
ANCHOR_COMMITMENTS = "anchor_commitments"
LOTS = "lots"
GOVERNANCE_TERMS = "governance_terms"
EDU_TIPS = "edu_tips"

# Roles
ROLE_RESIDENT = "resident"
ROLE_COOPERADO = "cooperado"
ROLE_OPERATOR = "operator"
ROLES = (ROLE_RESIDENT, ROLE_COOPERADO, ROLE_OPERATOR)

# Pickup request lifecycle
STATUS_OPEN = "open"
STATUS_ACCEPTED = "accepted"
STATUS_EN_ROUTE = "en_route"
STATUS_COLLECTED = "collected"
PICKUP_TRANSITIONS = {
    STATUS_OPEN: STATUS_ACCEPTED,
    STATUS_ACCEPTED: STATUS_EN_ROUTE,
    STATUS_EN_ROUTE: STATUS_COLLECTED,
}

MODE_DOORSTEP = "doorstep"
MODE_DROP_POINT = "drop_point"
FULFILLMENT_MODES = (MODE_DOORSTEP, MODE_DROP_POINT)

MATERIALS = ("paper", "plastic", "metal", "glass", "oil", "ewaste", "reject")
UNITS = ("bag", "kg", "unit")

POST_KINDS = (
    "registro",
    "recibo",
    "mutirao",
    "chamado",
    "ponto_critico",
    "transparencia",
)

MEDIA_ENTITY_TYPES = ("receipt", "post")

# Mural
MURAL_LIMIT = 50

# Notifications
NOTIFICATIONS_LIST_LIMIT = 20

# Media
DEFAULT_MEDIA_BUCKET = "eco-media"
IMAGE_MAX_DIMENSION = 1200
IMAGE_JPEG_QUALITY = 80

WEEKDAY_NAMES = ("Domingo", "Segunda", "Terça", "Quarta", "Quinta", "Sexta", "Sábado")

# Pickup requests
MAX_ITEMS_PER_REQUEST = 12
MAX_QTY_PER_ITEM = 50
CADENCES = ("weekly", "biweekly")
SUBSCRIPTION_ACTIVE = "active"
SUBSCRIPTION_PAUSED = "paused"
RECEIPT_CODE_PREFIX = "ECO-"

# Notification kinds
NOTIFICATION_RECEIPT_READY = "receipt_ready"
NOTIFICATION_PICKUP_ACCEPTED = "pickup_accepted"

# Cooperado earnings
EARNINGS_RECENT_DAYS = 30

# Drop point and route window administration
DEFAULT_DROP_POINT_HOURS = "Seg-Sex 09h-18h"
DEFAULT_DROP_POINT_MATERIALS = "paper,plastic,metal"
DEFAULT_WINDOW_CAPACITY = 20

# Neighborhood transparency
TRANSPARENCY_WEEKS = 12
