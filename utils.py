CURRENCY_SYMBOLS = {
    'GBP': '£',
    'USD': '$',
    'EUR': '€',
    'AUD': '$',
}

SUPPORTED_CURRENCIES = list(CURRENCY_SYMBOLS.keys())

CURRENCY_LABELS = {
    'GBP': 'GBP (£)',
    'USD': 'USD ($)',
    'EUR': 'EUR (€)',
    'AUD': 'AUD ($)',
}


def get_currency_symbol(currency_code):
    """Symbol for a currency code, '$' for unknown codes"""
    return CURRENCY_SYMBOLS.get(currency_code, '$')


def format_currency(amount, currency_code='GBP'):
    """
    Format a number as currency in the selected currency
    """
    return f"{get_currency_symbol(currency_code)}{amount:,.2f}"


def format_percent(value):
    return f"{value:.1f}%"
