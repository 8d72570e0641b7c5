# eth_txfuzz_core/strategies/__init__.py
