# lockbox_core/constants.py

KEY_SIZE = 32           # AES-256
IV_SIZE = 12            # 96-bit GCM nonce
TAG_SIZE = 16

SECONDS_PER_DAY = 24 * 60 * 60
DEFAULT_NAME = "Confidential Newsletter"
DEFAULT_PRICE = 10 ** 15                  # 0.001 in 18-decimal base units
DEFAULT_DURATION = 30 * SECONDS_PER_DAY

# user-decrypt authorization window
DEFAULT_VALIDITY_DAYS = 10
MAX_VALIDITY_DAYS = 365

EIP712_DOMAIN_NAME = "Decryption"
EIP712_DOMAIN_VERSION = "1"
DEFAULT_CHAIN_ID = 11155111
DEFAULT_VERIFYING_CONTRACT = "0x5ffdaab0373e62e2ea2944776209aef29e631a64"

HKDF_INFO = b"lockbox-reencrypt-v1"
INPUT_PROOF_INFO = "lockbox-input-v1"

# audit event types
EV_DEPLOYED = "LockDeployed"
EV_KEY_SET = "ContentKeySet"
EV_PURCHASED = "SubscriptionPurchased"
EV_RENEWED = "SubscriptionRenewed"
EV_ACCESS_GRANTED = "KeyAccessGranted"
EV_PARAMS_UPDATED = "SubscriptionParamsUpdated"
EV_WITHDRAWN = "FundsWithdrawn"
