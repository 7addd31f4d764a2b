"""
Bloom Filter for compact per-user block list storage
Trades a small false positive rate for roughly 8-12x less space than a DID list
"""

import base64
import math
from typing import Dict, Iterable, List, Optional

import mmh3


DEFAULT_BITS_PER_ELEMENT = 10
DEFAULT_HASH_COUNT = 7
MIN_SIZE_BITS = 64


class HashStrategy:
    """Deterministic 32-bit string hash used for double hashing"""

    name = "abstract"

    def hash(self, item: str, seed: int = 0) -> int:
        raise NotImplementedError


class Fnv1aHashStrategy(HashStrategy):
    """32-bit FNV-1a, seed XORed into the offset basis"""

    name = "fnv1a"

    OFFSET_BASIS = 2166136261
    PRIME = 16777619

    def hash(self, item: str, seed: int = 0) -> int:
        value = (self.OFFSET_BASIS ^ seed) & 0xFFFFFFFF
        for char in item:
            value ^= ord(char)
            value = (value * self.PRIME) & 0xFFFFFFFF
        return value


class Murmur3HashStrategy(HashStrategy):
    """MurmurHash3 x86 32-bit via mmh3"""

    name = "murmur3"

    def hash(self, item: str, seed: int = 0) -> int:
        return mmh3.hash(item, seed, False)


HASH_STRATEGIES = {
    Fnv1aHashStrategy.name: Fnv1aHashStrategy,
    Murmur3HashStrategy.name: Murmur3HashStrategy,
}


def get_hash_strategy(name: Optional[str] = None) -> HashStrategy:
    """Look up a hash strategy by name (default fnv1a)"""
    strategy_cls = HASH_STRATEGIES.get(name or Fnv1aHashStrategy.name)
    if strategy_cls is None:
        raise ValueError(f"Unknown bloom filter hash strategy: {name}")
    return strategy_cls()


class BloomFilter:
    """
    Fixed-size Bloom Filter with double hashing

    Never resized: inserting beyond the design capacity only raises the
    false positive rate.
    """

    def __init__(self, size_bits: int, hash_count: int = DEFAULT_HASH_COUNT,
                 bit_array: Optional[bytearray] = None, inserted_count: int = 0,
                 hash_strategy: Optional[HashStrategy] = None):
        if size_bits <= 0:
            raise ValueError("size_bits must be positive")
        if hash_count <= 0:
            raise ValueError("hash_count must be positive")

        self.size_bits = size_bits
        self.hash_count = hash_count
        self.hash_strategy = hash_strategy or Fnv1aHashStrategy()

        byte_size = math.ceil(size_bits / 8)
        if bit_array is None:
            bit_array = bytearray(byte_size)
        elif len(bit_array) != byte_size:
            raise ValueError(f"bit array has {len(bit_array)} bytes, expected {byte_size}")
        self.bit_array = bytearray(bit_array)

        self.inserted_count = inserted_count

    @classmethod
    def create(cls, expected_elements: int, bits_per_element: int = DEFAULT_BITS_PER_ELEMENT,
               hash_count: int = DEFAULT_HASH_COUNT,
               hash_strategy: Optional[HashStrategy] = None) -> 'BloomFilter':
        """
        Create an empty filter sized for the expected number of elements

        Defaults give about 1% false positives at the design load.
        """
        size_bits = max(MIN_SIZE_BITS, math.ceil(max(expected_elements, 0) * bits_per_element))
        return cls(size_bits, hash_count, hash_strategy=hash_strategy)

    @classmethod
    def from_items(cls, items: List[str], bits_per_element: int = DEFAULT_BITS_PER_ELEMENT,
                   hash_count: int = DEFAULT_HASH_COUNT,
                   hash_strategy: Optional[HashStrategy] = None) -> 'BloomFilter':
        """Create a filter sized for and populated with the given items"""
        bloom = cls.create(len(items), bits_per_element, hash_count, hash_strategy)
        bloom.add_batch(items)
        return bloom

    def _get_bit_positions(self, item: str) -> List[int]:
        """Bit positions h1 + i*h2 (mod size) for i in [0, hash_count)"""
        h1 = self.hash_strategy.hash(item, 0)
        h2 = self.hash_strategy.hash(item, h1)
        return [(h1 + i * h2) % self.size_bits for i in range(self.hash_count)]

    def add(self, item: str) -> None:
        """Add an item to the Bloom Filter"""
        for position in self._get_bit_positions(item):
            self.bit_array[position // 8] |= (1 << (position % 8))
        self.inserted_count += 1

    def add_batch(self, items: Iterable[str]) -> None:
        """Add multiple items"""
        for item in items:
            self.add(item)

    def might_contain(self, item: str) -> bool:
        """
        Check if an item might be in the set

        Returns:
            True: Item MIGHT be in the set (could be false positive)
            False: Item is DEFINITELY NOT in the set
        """
        for position in self._get_bit_positions(item):
            if not (self.bit_array[position // 8] & (1 << (position % 8))):
                return False
        return True

    def __contains__(self, item: str) -> bool:
        return self.might_contain(item)

    def estimate_false_positive_rate(self) -> float:
        """P(false positive) ~= (1 - e^(-kn/m))^k"""
        k = self.hash_count
        n = self.inserted_count
        m = self.size_bits

        if n == 0:
            return 0.0

        return (1 - math.exp(-k * n / m)) ** k

    @property
    def size_bytes(self) -> int:
        return len(self.bit_array)

    def to_dict(self) -> Dict:
        """Serialize to a JSON-safe dictionary (bits packed 8 per byte, base64)"""
        return {
            'bits': base64.b64encode(bytes(self.bit_array)).decode('ascii'),
            'size': self.size_bits,
            'num_hashes': self.hash_count,
            'count': self.inserted_count,
            'hash': self.hash_strategy.name,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'BloomFilter':
        """Rebuild a filter from to_dict() output"""
        bit_array = bytearray(base64.b64decode(data['bits']))
        return cls(
            size_bits=int(data['size']),
            hash_count=int(data['num_hashes']),
            bit_array=bit_array,
            inserted_count=int(data.get('count', 0)),
            hash_strategy=get_hash_strategy(data.get('hash'))
        )

    def get_stats(self) -> dict:
        """Get Bloom Filter statistics"""
        return {
            'items': self.inserted_count,
            'size_bits': self.size_bits,
            'size_bytes': self.size_bytes,
            'hash_functions': self.hash_count,
            'hash_strategy': self.hash_strategy.name,
            'false_positive_probability': round(self.estimate_false_positive_rate(), 4)
        }

    def __eq__(self, other) -> bool:
        if not isinstance(other, BloomFilter):
            return NotImplemented
        return (self.size_bits == other.size_bits
                and self.hash_count == other.hash_count
                and self.inserted_count == other.inserted_count
                and self.hash_strategy.name == other.hash_strategy.name
                and self.bit_array == other.bit_array)

    def __repr__(self) -> str:
        return (f"BloomFilter(size_bits={self.size_bits}, hash_count={self.hash_count}, "
                f"inserted={self.inserted_count}, hash={self.hash_strategy.name})")
