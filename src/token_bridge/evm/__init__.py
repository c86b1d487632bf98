"""Web3 adapters for the settlement layer and the bridge client built on them."""
