# eth_txfuzz_core/clients/__init__.py
