"""Message catalog and lookup.

One table per language, keyed by MessageKey. English is the default locale
and is complete; Luganda and Swahili cover the common screens. A key missing
from a locale is served from English, and a key missing from English too is
rendered as its own name.
"""

from __future__ import annotations

from afritokeni_ussd.domain.enums import Language
from afritokeni_ussd.i18n.keys import MessageKey as K
from afritokeni_ussd.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_LANGUAGE = Language.ENGLISH

ENGLISH: dict[K, str] = {
    K.WELCOME_UNREGISTERED: (
        "Welcome to AfriTokeni!\nYou are not registered yet.\n"
        "Please enter your full name (first and last name):"
    ),
    K.INVALID_NAME: "Invalid name. Please enter your full name (at least 3 characters):",
    K.NAME_NEEDS_TWO_PARTS: "Please enter both first and last name:",
    K.CODE_SENT: (
        "Thank you, {first_name}!\nWe sent a 6-digit verification code to +{phone}.\n"
        "Enter the code:"
    ),
    K.CODE_SMS: (
        "AfriTokeni Verification: Your code is {code}. "
        "It expires in {minutes} minutes. Do not share it with anyone."
    ),
    K.CODE_DELIVERY_FAILED: "Failed to send verification code. Please try again later.",
    K.CODE_INVALID: "Invalid code. {remaining} attempt(s) left.\nEnter the 6-digit code:",
    K.CODE_TOO_MANY: "Too many failed attempts. Please dial again to restart registration.",
    K.CODE_EXPIRED: "Verification code expired. Please dial again to restart registration.",
    K.REGISTRATION_FAILED: "Registration failed. Please try again later.",
    K.REGISTRATION_CANCELLED: "Registration cancelled. Dial again any time.",
    K.VERIFICATION_SUCCESS: (
        "Verification successful!\nAccount created successfully.\n"
        "Set a 4-digit PIN to secure your account:"
    ),
    K.PIN_SETUP_PROMPT: "Set a 4-digit PIN to secure your account:",
    K.PIN_SET_SUCCESS: "PIN set successfully!",
    K.ENTER_PIN: "Enter your 4-digit PIN:",
    K.PIN_INVALID_FORMAT: "PIN must be exactly 4 digits.\nEnter your 4-digit PIN:",
    K.PIN_INCORRECT: "Incorrect PIN. {remaining} attempt(s) left.\nEnter your 4-digit PIN:",
    K.PIN_TOO_MANY: "Too many incorrect PIN attempts. Please try again later.",
    K.ACCOUNT_LOCKED: (
        "Your account is locked after repeated incorrect PINs. "
        "Try again in {minutes} minutes."
    ),
    K.MAIN_MENU: (
        "Welcome to AfriTokeni\n1. Local Currency ({currency})\n"
        "2. Bitcoin (ckBTC)\n3. USDC (ckUSDC)\n4. Help"
    ),
    K.BACK_OR_MENU: "0. Back | 9. Menu",
    K.INVALID_OPTION: "Invalid option. Please try again:",
    K.GOODBYE: "Thank you for using AfriTokeni!",
    K.HELP_MENU: (
        "AfriTokeni Help\nSend money, trade Bitcoin and USDC through local agents.\n"
        "Support: +256 700 000 000\n1. Language"
    ),
    K.LANGUAGE_MENU: "Select language:\n1. English\n2. Luganda\n3. Kiswahili",
    K.LANGUAGE_SET: "Language set to English.",
    K.LOCAL_CURRENCY_MENU: (
        "Local Currency ({currency})\n1. Send Money\n2. Check Balance\n3. Deposit\n"
        "4. Withdraw\n5. Transactions\n6. Find Agent"
    ),
    K.BALANCE: "Your balance is\n{amount} {currency}",
    K.TRANSACTIONS_HEADER: "Recent transactions:",
    K.NO_TRANSACTIONS: "No transactions yet.",
    K.ENTER_RECIPIENT_PHONE: "Enter recipient phone number:\n(e.g. 256700123456)",
    K.INVALID_PHONE: "Invalid phone number.\nEnter recipient phone number:",
    K.RECIPIENT_NOT_FOUND: (
        "Recipient is not registered with AfriTokeni.\nEnter another phone number:"
    ),
    K.CANNOT_SEND_TO_SELF: "You cannot send to yourself.\nEnter another phone number:",
    K.ENTER_AMOUNT: "Enter amount ({unit}):",
    K.INVALID_AMOUNT: "Invalid amount.\nEnter amount ({unit}):",
    K.AMOUNT_OUT_OF_RANGE: (
        "Amount must be between {minimum} and {maximum} {unit}.\nEnter amount ({unit}):"
    ),
    K.AMOUNT_BELOW_MINIMUM: "Minimum amount is {minimum} {unit}.\nEnter amount ({unit}):",
    K.INSUFFICIENT_BALANCE: (
        "Insufficient balance.\nAvailable: {available} {unit}\nRequired: {required} {unit}"
    ),
    K.SEND_CONFIRM: (
        "Send {amount} {currency} to {recipient}\nFee: {fee} {currency}\n"
        "Total: {total} {currency}\nEnter PIN to confirm:"
    ),
    K.SEND_SUCCESS: "Transaction successful!\nSent {amount} {currency} to {recipient}.\nRef: {reference}",
    K.SMS_SEND_SENDER: (
        "AfriTokeni: You sent {amount} {currency} to {recipient}. "
        "Fee {fee} {currency}. Ref {reference}."
    ),
    K.SMS_SEND_RECIPIENT: (
        "AfriTokeni: You received {amount} {currency} from {sender}. Ref {reference}."
    ),
    K.TRANSACTION_FAILED: "Transaction failed. Please try again later.",
    K.SELECT_AGENT: "Select an agent:",
    K.AGENT_LINE: "{index}. {name} - {location}",
    K.NO_AGENTS: "No agents available right now. Please try again later.",
    K.AGENT_DETAILS: "{name}\n{location}\nPhone: {phone}",
    K.DEPOSIT_CONFIRM: "Deposit {amount} {currency}\nAgent: {agent}\nEnter PIN to confirm:",
    K.DEPOSIT_CREATED: (
        "Deposit request created.\nCode: {code}\n"
        "Give this code and your cash to {agent}."
    ),
    K.SMS_DEPOSIT: "AfriTokeni: Deposit code {code} for {amount} {currency} at {agent}.",
    K.WITHDRAW_CONFIRM: (
        "Withdraw {amount} {currency}\nFee: {fee} {currency}\nAgent: {agent}\n"
        "Enter PIN to confirm:"
    ),
    K.WITHDRAW_CREATED: (
        "Withdrawal code: {code}\nShow it to {agent} to collect {amount} {currency}.\n"
        "Valid for {hours} hours."
    ),
    K.SMS_WITHDRAW: (
        "AfriTokeni: Withdrawal code {code} for {amount} {currency} at {agent}. "
        "Valid for {hours} hours."
    ),
    K.CRYPTO_MENU: (
        "{asset}\n1. Check Balance\n2. Rate\n3. Buy\n4. Sell\n5. Send\n"
        "6. Receive\n7. Withdraw"
    ),
    K.CRYPTO_BALANCE: "{asset} balance:\n{amount} {asset}\n~{local} {currency}",
    K.CRYPTO_RATE: "Current rate:\n1 {asset} = {rate} {currency}",
    K.BUY_ENTER_AMOUNT: "Enter amount to spend ({currency}):",
    K.BUY_CONFIRM: (
        "Buy {asset_amount} {asset}\nPay {local} {currency} (fee {fee})\n"
        "Agent: {agent}\nEnter PIN to confirm:"
    ),
    K.SELL_AMOUNT_TYPE: "Sell {asset}\n1. Amount in {currency}\n2. Amount in {asset}",
    K.SELL_CONFIRM: (
        "Sell {asset_amount} {asset}\nReceive {local} {currency} (fee {fee})\n"
        "Agent: {agent}\nEnter PIN to confirm:"
    ),
    K.TRADE_CREATED: (
        "Exchange code: {code}\nMeet {agent} within {hours} hours and give them this code."
    ),
    K.SMS_TRADE: (
        "AfriTokeni: Exchange code {code} for {asset_amount} {asset} "
        "({local} {currency}) with {agent}. Expires in {hours} hours."
    ),
    K.ENTER_ADDRESS: "Enter destination {asset} address:",
    K.INVALID_ADDRESS: "Invalid address.\nEnter destination {asset} address:",
    K.CRYPTO_SEND_CONFIRM: "Send {amount} {asset} to {destination}\nEnter PIN to confirm:",
    K.CRYPTO_SENT: "Sent {amount} {asset} to {destination}.\nRef: {reference}",
    K.CRYPTO_WITHDRAW_CONFIRM: (
        "Withdraw {amount} {asset} to {destination}\nEnter PIN to confirm:"
    ),
    K.CRYPTO_WITHDRAWN: "Withdrawal of {amount} {asset} submitted.\nRef: {reference}",
    K.RECEIVE_ADDRESS: "Your {asset} deposit address:\n{address}",
    K.RATE_UNAVAILABLE: "Rates are unavailable right now. Please try again later.",
    K.ACCOUNT_MISSING: "Account not found. Please dial again to register.",
    K.GENERIC_ERROR: "An error occurred. Please try again later.",
}

LUGANDA: dict[K, str] = {
    K.WELCOME_UNREGISTERED: (
        "Tukusanyukidde ku AfriTokeni!\nTonnewandiisa.\n"
        "Yingiza amannya go gombi (erisooka n'erisembayo):"
    ),
    K.ENTER_PIN: "Yingiza PIN yo ey'ennamba 4:",
    K.PIN_INCORRECT: "PIN si ntuufu. Osigazza emirundi {remaining}.\nYingiza PIN yo:",
    K.PIN_TOO_MANY: "Ogezezzaako emirundi mingi. Gezaako oluvannyuma.",
    K.ACCOUNT_LOCKED: "Akawunti eziyiddwa. Gezaako nate mu dakiika {minutes}.",
    K.MAIN_MENU: (
        "Tukusanyukidde ku AfriTokeni\n1. Ssente z'omu Uganda ({currency})\n"
        "2. Bitcoin (ckBTC)\n3. USDC (ckUSDC)\n4. Obuyambi"
    ),
    K.BACK_OR_MENU: "0. Ddayo | 9. Menu",
    K.INVALID_OPTION: "Ekiragiro si kituufu. Gezaako nate:",
    K.GOODBYE: "Webale okukozesa AfriTokeni!",
    K.LANGUAGE_MENU: "Londa olulimi:\n1. English\n2. Luganda\n3. Kiswahili",
    K.LANGUAGE_SET: "Olulimi luteereddwa ku Luganda.",
    K.LOCAL_CURRENCY_MENU: (
        "Ssente z'omu Uganda ({currency})\n1. Wereza Ssente\n2. Kebera Ssente\n"
        "3. Teeka Ssente\n4. Ggya Ssente\n5. Ebyafaayo\n6. Noonya Agenti"
    ),
    K.BALANCE: "Ssente zo\n{amount} {currency}",
    K.ENTER_RECIPIENT_PHONE: (
        "Yingiza namba ya simu y'omuntu:\n(okugeza: 256700123456)"
    ),
    K.INVALID_PHONE: "Namba ya simu si ntuufu.\nYingiza namba ya simu y'omuntu:",
    K.ENTER_AMOUNT: "Yingiza omuwendo ({unit}):",
    K.INVALID_AMOUNT: "Omuwendo si mutuufu.\nYingiza omuwendo ({unit}):",
    K.INSUFFICIENT_BALANCE: (
        "Ssente tezimala.\nZiriwo: {available} {unit}\nZeetaagisa: {required} {unit}"
    ),
    K.TRANSACTION_FAILED: "Ensimbi teziweereddwa. Gezaako oluvannyuma.",
    K.SELECT_AGENT: "Londa agenti:",
    K.NO_AGENTS: "Tewali agenti kati. Gezaako oluvannyuma.",
    K.GENERIC_ERROR: "Waliwo ekisobye. Gezaako oluvannyuma.",
}

SWAHILI: dict[K, str] = {
    K.WELCOME_UNREGISTERED: (
        "Karibu AfriTokeni!\nBado hujasajiliwa.\n"
        "Tafadhali weka jina lako kamili (la kwanza na la mwisho):"
    ),
    K.INVALID_NAME: "Jina si sahihi. Weka jina lako kamili (angalau herufi 3):",
    K.NAME_NEEDS_TWO_PARTS: "Tafadhali weka jina la kwanza na la mwisho:",
    K.CODE_INVALID: "Nambari si sahihi. Majaribio {remaining} yamebaki.\nWeka nambari ya tarakimu 6:",
    K.CODE_TOO_MANY: "Majaribio mengi sana. Piga tena kuanza usajili upya.",
    K.PIN_SETUP_PROMPT: "Weka PIN ya tarakimu 4 kulinda akaunti yako:",
    K.PIN_SET_SUCCESS: "PIN imewekwa kwa mafanikio!",
    K.ENTER_PIN: "Weka PIN yako ya tarakimu 4:",
    K.PIN_INVALID_FORMAT: "PIN lazima iwe tarakimu 4.\nWeka PIN yako:",
    K.PIN_INCORRECT: "PIN si sahihi. Majaribio {remaining} yamebaki.\nWeka PIN yako:",
    K.PIN_TOO_MANY: "Majaribio mengi sana ya PIN. Jaribu tena baadaye.",
    K.ACCOUNT_LOCKED: "Akaunti imefungwa. Jaribu tena baada ya dakika {minutes}.",
    K.MAIN_MENU: (
        "Karibu AfriTokeni\n1. Sarafu ya Ndani ({currency})\n"
        "2. Bitcoin (ckBTC)\n3. USDC (ckUSDC)\n4. Msaada"
    ),
    K.BACK_OR_MENU: "0. Rudi | 9. Menyu",
    K.INVALID_OPTION: "Chaguo si sahihi. Jaribu tena:",
    K.GOODBYE: "Asante kwa kutumia AfriTokeni!",
    K.LANGUAGE_MENU: "Chagua lugha:\n1. English\n2. Luganda\n3. Kiswahili",
    K.LANGUAGE_SET: "Lugha imewekwa Kiswahili.",
    K.LOCAL_CURRENCY_MENU: (
        "Sarafu ya Ndani ({currency})\n1. Tuma Pesa\n2. Angalia Salio\n3. Weka Pesa\n"
        "4. Ondoa Pesa\n5. Historia ya Muamala\n6. Tafuta Wakala"
    ),
    K.BALANCE: "Salio yako ni\n{amount} {currency}",
    K.TRANSACTIONS_HEADER: "Miamala ya hivi karibuni:",
    K.NO_TRANSACTIONS: "Hakuna miamala bado.",
    K.ENTER_RECIPIENT_PHONE: "Weka nambari ya simu ya mpokeaji:\n(mfano: 256700123456)",
    K.INVALID_PHONE: "Nambari ya simu si sahihi.\nWeka nambari ya simu ya mpokeaji:",
    K.ENTER_AMOUNT: "Weka kiasi ({unit}):",
    K.INVALID_AMOUNT: "Kiasi si sahihi.\nWeka kiasi ({unit}):",
    K.INSUFFICIENT_BALANCE: (
        "Salio haitoshi.\nInapatikana: {available} {unit}\nInahitajika: {required} {unit}"
    ),
    K.TRANSACTION_FAILED: "Muamala umeshindwa. Jaribu tena baadaye.",
    K.SELECT_AGENT: "Chagua wakala:",
    K.NO_AGENTS: "Hakuna mawakala kwa sasa. Jaribu tena baadaye.",
    K.CRYPTO_RATE: "Bei ya sasa:\n1 {asset} = {rate} {currency}",
    K.GENERIC_ERROR: "Hitilafu imetokea. Tafadhali jaribu tena baadaye.",
}

CATALOG: dict[Language, dict[K, str]] = {
    Language.ENGLISH: ENGLISH,
    Language.LUGANDA: LUGANDA,
    Language.SWAHILI: SWAHILI,
}


def template_for(key: K, language: Language | None = None) -> str:
    """Return the raw template for ``key`` following the fallback chain."""
    language = language or DEFAULT_LANGUAGE
    template = CATALOG[language].get(key)
    if template is not None:
        return template
    if language is not DEFAULT_LANGUAGE:
        logger.debug("i18n.fallback", key=key.value, language=language.value)
        template = CATALOG[DEFAULT_LANGUAGE].get(key)
        if template is not None:
            return template
    logger.warning("i18n.missing_key", key=key.value)
    return key.value


def translate(key: K, language: Language | None = None, **values: object) -> str:
    """Render ``key`` in ``language`` with named placeholders filled in."""
    template = template_for(key, language)
    return template.format(**values) if values else template
