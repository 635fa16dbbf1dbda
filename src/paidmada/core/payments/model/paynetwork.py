from enum import Enum


class Network(str, Enum):
    # Mobile money networks (Madagascar)
    MVOLA = "mvola"                 # Telma MVola
    ORANGE_MONEY = "orange_money"   # Orange Money
    AIRTEL_MONEY = "airtel_money"   # Airtel Money


COUNTRY_CODE = "261"
MOBILE_MARKER = "03"
DEFAULT_CURRENCY = "MGA"

# Each network owns a fixed, disjoint set of local prefixes
NETWORK_PREFIXES = {
    Network.MVOLA: ("034", "038"),
    Network.ORANGE_MONEY: ("032", "037"),
    Network.AIRTEL_MONEY: ("033",),
}

NETWORK_DETAILS = {
    Network.MVOLA: {"name": "MVola", "operator": "Telma"},
    Network.ORANGE_MONEY: {"name": "Orange Money", "operator": "Orange Madagascar"},
    Network.AIRTEL_MONEY: {"name": "Airtel Money", "operator": "Airtel Madagascar"},
}
