from coinbasis.parser.coinbase import CoinbaseJsonLinesParser, CoinbaseJsonParser
from coinbasis.parser.factory import ParserFactory

__all__ = ["CoinbaseJsonLinesParser", "CoinbaseJsonParser", "ParserFactory"]
