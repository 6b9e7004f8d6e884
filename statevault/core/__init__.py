"""statevault core: codec, hashing, key-value backends and the stores."""
