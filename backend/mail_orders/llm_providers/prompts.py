"""
Prompt Builders for Order Email Analysis

Full prompts ask the backend whether an email is an order and, if so, for the
complete order record. Incremental prompts are used by the hybrid path and
only ask for the fields the pattern extractor left empty.

Field descriptions and instructions are written in the email's language so
the model looks for the vocabulary the email actually uses.
"""

from mail_orders.locale_terms import get_locale_patterns

DEFAULT_TEXT_LIMIT = 5000

# Record field -> key used on the wire
WIRE_FIELD_NAMES = {
    "order_number": "orderNumber",
    "amount": "amount",
    "currency": "currency",
    "order_date": "orderDate",
    "status": "status",
    "estimated_delivery": "estimatedDelivery",
    "tracking_number": "trackingNumber",
    "carrier": "carrier",
    "items": "items",
    "retailer": "retailer",
}

SYSTEM_PROMPT = (
    "You extract purchase order data from customer emails. "
    "You answer with a single JSON object and nothing else."
)

FIELD_DESCRIPTIONS = {
    "nl": """- orderNumber (zoek naar: {order_terms})
- retailer (van afzender domein of bedrijfsnaam)
- amount & currency (zoek naar: {total_terms}, {currency_symbols})
- orderDate (ISO formaat)
- status (confirmed/shipped/delivered)
- estimatedDelivery (zoek naar: {delivery_terms})
- trackingNumber & carrier (indien aanwezig)
- items array met name, quantity, price (indien gedetailleerd)
- confidence (0-1)""",
    "de": """- orderNumber (suche nach: {order_terms})
- retailer (aus Absender-Domain oder Firmenname)
- amount & currency (suche nach: {total_terms}, {currency_symbols})
- orderDate (ISO-Format)
- status (confirmed/shipped/delivered)
- estimatedDelivery (suche nach: {delivery_terms})
- trackingNumber & carrier (falls vorhanden)
- items Array mit name, quantity, price (falls detailliert)
- confidence (0-1)""",
    "fr": """- orderNumber (cherchez: {order_terms})
- retailer (du domaine expéditeur ou nom de l'entreprise)
- amount & currency (cherchez: {total_terms}, {currency_symbols})
- orderDate (format ISO)
- status (confirmed/shipped/delivered)
- estimatedDelivery (cherchez: {delivery_terms})
- trackingNumber & carrier (si présent)
- items array avec name, quantity, price (si détaillé)
- confidence (0-1)""",
    "en": """- orderNumber (look for: {order_terms})
- retailer (from sender email domain or company name)
- amount & currency (look for: {total_terms}, {currency_symbols})
- orderDate (ISO format)
- status (confirmed/shipped/delivered)
- estimatedDelivery (look for: {delivery_terms})
- trackingNumber & carrier (if present)
- items array with name, quantity, price (if detailed)
- confidence (0-1)""",
}

INSTRUCTIONS = {
    "nl": """BELANGRIJK voor Nederlandse emails:
- Zoek naar {order_terms} voor het bestelnummer (kan ook in het onderwerp staan)
- {total_terms} = totaalbedrag
- Valuta is meestal EUR (€)
- Nederlands nummerformaat: 1.234,56 -> 1234.56 en 89,99 -> 89.99
- Vervoerders (DHL, PostNL) sturen geen bedrag: amount is dan null, isOrder blijft true""",
    "de": """WICHTIG für deutsche E-Mails:
- Suche nach {order_terms} für die Bestellnummer (kann auch im Betreff stehen)
- {total_terms} = Gesamtbetrag
- Währung ist meist EUR (€)
- Deutsches Zahlenformat: 1.234,56 -> 1234.56 und 89,99 -> 89.99
- Versanddienstleister (DHL) nennen keinen Betrag: amount ist dann null, isOrder bleibt true""",
    "fr": """IMPORTANT pour les emails français:
- Cherchez {order_terms} pour le numéro de commande (peut aussi être dans le sujet)
- {total_terms} = montant total
- La devise est généralement EUR (€)
- Format de nombre français: 1 234,56 -> 1234.56 et 89,99 -> 89.99
- Les transporteurs n'indiquent pas de montant: amount est alors null, isOrder reste true""",
    "en": """IMPORTANT for English emails:
- Look for {order_terms} for the order number (may also be in the subject)
- {total_terms} = total amount
- Currency is usually EUR (€), GBP (£) or USD ($)
- Carrier notifications (DHL, PostNL, UPS) have no amount: amount is null, isOrder stays true""",
}

EXAMPLES = {
    "nl": """Voorbeelden:
- "Bestelnummer: 123456" -> orderNumber: "123456"
- "Je bestelling (90276634)" in onderwerp -> orderNumber: "90276634"
- "Totaalbedrag: €89,99" -> amount: 89.99, currency: "EUR"
- "Bezorging: 15 januari 2025" -> estimatedDelivery: "2025-01-15"
- "Je bestelling is verzonden" -> status: "shipped"
- "Je pakket is bezorgd" -> status: "delivered"
- DHL email met "Track & Trace: JVGL06242291005306" -> trackingNumber, carrier: "DHL"
- "Je bestelling bij Bol.com" -> retailer: "Bol.com"
- PostNL zonder bedrag -> amount: null, isOrder: true""",
    "en": """Examples:
- "Order number: 123456" -> orderNumber: "123456"
- "Order Total: $125.50" -> amount: 125.50, currency: "USD"
- "Delivery: January 15, 2025" -> estimatedDelivery: "2025-01-15"
- "Your order has been shipped" -> status: "shipped"
- "Your order was delivered" -> status: "delivered"
- DHL email with "Tracking: JVGL06242291005306" -> trackingNumber, carrier: "DHL"
- "Thank you for shopping at Zalando" -> retailer: "Zalando"
- UPS notification without amount -> amount: null, isOrder: true""",
}

INCREMENTAL_INSTRUCTIONS = {
    "nl": "Zoek specifiek naar deze ontbrekende velden in deze NL email:",
    "de": "Suchen Sie spezifisch nach diesen fehlenden Feldern in dieser DE E-Mail:",
    "fr": "Cherchez spécifiquement ces champs manquants dans cet email FR:",
    "en": "Look specifically for these missing fields in this EN email:",
}


def _localized(table: dict, language: str) -> str:
    return table.get(language) or table["en"]


def _term_values(language: str) -> dict:
    terms = get_locale_patterns(language)
    return {
        "order_terms": ", ".join(terms.order_terms),
        "total_terms": ", ".join(terms.total_terms),
        "delivery_terms": ", ".join(terms.delivery_terms),
        "currency_symbols": ", ".join(terms.currency_symbols),
    }


def _truncate(text: str, limit: int) -> str:
    if len(text) > limit:
        return text[:limit] + "... [truncated]"
    return text


def build_multilingual_prompt(language: str, email_text: str,
                              max_length: int = DEFAULT_TEXT_LIMIT,
                              include_examples: bool = True) -> str:
    """
    Build the full extraction prompt in the email's language.

    Args:
        language: Detected language code
        email_text: Headers and body of the email
        max_length: Maximum characters of email text to include
        include_examples: Add worked examples (nl and en only, others use en)

    Returns:
        Prompt string asking for {"isOrder", "orderData", "debugInfo"}
    """
    values = _term_values(language)
    sections = [
        "Analyze this email. If it's an order (purchase confirmation/shipping/delivery), extract:",
        _localized(FIELD_DESCRIPTIONS, language).format(**values),
        _localized(INSTRUCTIONS, language).format(**values),
    ]
    if include_examples:
        sections.append(_localized(EXAMPLES, language))

    sections.append(
        "Return ONLY valid JSON:\n"
        '{"isOrder": true/false, "orderData": {...}, '
        f'"debugInfo": {{"language": "{language}", "emailType": "..."}}}}'
    )
    sections.append("Email:\n" + _truncate(email_text, max_length))

    return "\n\n".join(sections)


def build_incremental_prompt(language: str, email_text: str, missing_fields,
                             context: str = "",
                             max_length: int = DEFAULT_TEXT_LIMIT) -> str:
    """
    Build a prompt that asks only for fields the pattern extractor missed.

    Args:
        language: Detected language code
        email_text: Headers and body of the email
        missing_fields: Record field names (order_number, amount, ...)
        context: Optional hint, e.g. the fields already found
        max_length: Maximum characters of email text to include

    Returns:
        Prompt string asking for {"missingFields": {...}}
    """
    terms = get_locale_patterns(language)
    hints = {
        "order_number": ", ".join(terms.order_terms),
        "amount": ", ".join(terms.total_terms),
        "estimated_delivery": ", ".join(terms.delivery_terms),
        "tracking_number": "track & trace, tracking",
    }

    lines = [
        f"- {WIRE_FIELD_NAMES.get(name, name)}: {hints.get(name, name)}"
        for name in missing_fields
    ]

    sections = [_localized(INCREMENTAL_INSTRUCTIONS, language), "\n".join(lines)]
    if context:
        sections.append(context)
    sections.append(
        "Return only the missing fields in JSON format (null when absent):\n"
        '{"missingFields": {...}}'
    )
    sections.append("Email excerpt:\n" + email_text[:max_length])

    return "\n\n".join(sections)
