"""Every message the USSD core can show or send."""

import enum


class MessageKey(enum.StrEnum):
    # Onboarding
    WELCOME_UNREGISTERED = "welcome_unregistered"
    INVALID_NAME = "invalid_name"
    NAME_NEEDS_TWO_PARTS = "name_needs_two_parts"
    CODE_SENT = "code_sent"
    CODE_SMS = "code_sms"
    CODE_DELIVERY_FAILED = "code_delivery_failed"
    CODE_INVALID = "code_invalid"
    CODE_TOO_MANY = "code_too_many"
    CODE_EXPIRED = "code_expired"
    REGISTRATION_FAILED = "registration_failed"
    REGISTRATION_CANCELLED = "registration_cancelled"
    VERIFICATION_SUCCESS = "verification_success"
    PIN_SETUP_PROMPT = "pin_setup_prompt"
    PIN_SET_SUCCESS = "pin_set_success"

    # PIN gate
    ENTER_PIN = "enter_pin"
    PIN_INVALID_FORMAT = "pin_invalid_format"
    PIN_INCORRECT = "pin_incorrect"
    PIN_TOO_MANY = "pin_too_many"
    ACCOUNT_LOCKED = "account_locked"

    # Navigation
    MAIN_MENU = "main_menu"
    BACK_OR_MENU = "back_or_menu"
    INVALID_OPTION = "invalid_option"
    GOODBYE = "goodbye"
    HELP_MENU = "help_menu"
    LANGUAGE_MENU = "language_menu"
    LANGUAGE_SET = "language_set"

    # Local currency
    LOCAL_CURRENCY_MENU = "local_currency_menu"
    BALANCE = "balance"
    TRANSACTIONS_HEADER = "transactions_header"
    NO_TRANSACTIONS = "no_transactions"
    ENTER_RECIPIENT_PHONE = "enter_recipient_phone"
    INVALID_PHONE = "invalid_phone"
    RECIPIENT_NOT_FOUND = "recipient_not_found"
    CANNOT_SEND_TO_SELF = "cannot_send_to_self"
    ENTER_AMOUNT = "enter_amount"
    INVALID_AMOUNT = "invalid_amount"
    AMOUNT_OUT_OF_RANGE = "amount_out_of_range"
    AMOUNT_BELOW_MINIMUM = "amount_below_minimum"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    SEND_CONFIRM = "send_confirm"
    SEND_SUCCESS = "send_success"
    SMS_SEND_SENDER = "sms_send_sender"
    SMS_SEND_RECIPIENT = "sms_send_recipient"
    TRANSACTION_FAILED = "transaction_failed"

    # Agents
    SELECT_AGENT = "select_agent"
    AGENT_LINE = "agent_line"
    NO_AGENTS = "no_agents"
    AGENT_DETAILS = "agent_details"
    DEPOSIT_CONFIRM = "deposit_confirm"
    DEPOSIT_CREATED = "deposit_created"
    SMS_DEPOSIT = "sms_deposit"
    WITHDRAW_CONFIRM = "withdraw_confirm"
    WITHDRAW_CREATED = "withdraw_created"
    SMS_WITHDRAW = "sms_withdraw"

    # Crypto
    CRYPTO_MENU = "crypto_menu"
    CRYPTO_BALANCE = "crypto_balance"
    CRYPTO_RATE = "crypto_rate"
    BUY_ENTER_AMOUNT = "buy_enter_amount"
    BUY_CONFIRM = "buy_confirm"
    SELL_AMOUNT_TYPE = "sell_amount_type"
    SELL_CONFIRM = "sell_confirm"
    TRADE_CREATED = "trade_created"
    SMS_TRADE = "sms_trade"
    ENTER_ADDRESS = "enter_address"
    INVALID_ADDRESS = "invalid_address"
    CRYPTO_SEND_CONFIRM = "crypto_send_confirm"
    CRYPTO_SENT = "crypto_sent"
    CRYPTO_WITHDRAW_CONFIRM = "crypto_withdraw_confirm"
    CRYPTO_WITHDRAWN = "crypto_withdrawn"
    RECEIVE_ADDRESS = "receive_address"
    RATE_UNAVAILABLE = "rate_unavailable"

    # Failures
    ACCOUNT_MISSING = "account_missing"
    GENERIC_ERROR = "generic_error"
