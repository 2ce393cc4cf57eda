"""
Registry behavioral tests (type identity, aliases, capability matches).

Conventions
- Test method names follow CamelCase per project convention.
"""

import unittest
from abc import ABC, abstractmethod
from typing import Protocol, runtime_checkable
from unittest import TestCase

from conductor import Registry
from conductor.utils import typename


class Storage(ABC):
    @abstractmethod
    def read(self): ...


class DiskStorage(Storage):
    def __init__(self, root):
        self.root = root

    def read(self):
        return self.root


class MemoryStorage(Storage):
    def read(self):
        return "memory"


@runtime_checkable
class Greeter(Protocol):
    def hello(self) -> int: ...


class Friend:
    def __init__(self, value):
        self.value = value

    def hello(self):
        return self.value


class TestRegistry(TestCase):
    """Behavioral tests for Registry.register/register_as/lookup."""

    def setUp(self):
        self.registry = Registry()

    def testEmptyLookupNotFound(self):
        self.assertEqual(self.registry.lookup(int), (None, False))

    def testRegisterByTypeIdentity(self):
        friend = Friend(1)
        self.assertIs(self.registry.register(friend), self.registry)
        self.assertEqual(self.registry.lookup(Friend), (friend, True))

    def testLaterRegistrationReplaces(self):
        self.registry.register(Friend(1)).register(Friend(2))
        value, found = self.registry.lookup(Friend)
        self.assertTrue(found)
        self.assertEqual(value.value, 2)
        self.assertEqual(len(self.registry), 1)

    def testTypeIdentityIsExact(self):
        self.registry.register(DiskStorage("/tmp"))
        self.assertEqual(self.registry.lookup(Storage), (None, False))

    def testStringAlias(self):
        friend = Friend(3)
        self.registry.register_as("greeter", friend)
        self.assertEqual(self.registry.lookup("greeter"), (friend, True))
        self.assertIn("greeter", self.registry)

    def testTypeNameAlias(self):
        friend = Friend(4)
        self.registry.register_as(typename(Greeter), friend)
        self.assertEqual(self.registry.lookup(Greeter), (friend, True))

    def testTypeIdentityWinsOverAlias(self):
        registered, aliased = Friend(1), Friend(2)
        self.registry.register(registered).register_as(typename(Friend), aliased)
        self.assertIs(self.registry.lookup(Friend)[0], registered)

    def testSingleCapabilityMatch(self):
        disk = DiskStorage("/srv")
        self.registry.register_as("primary", disk)
        self.assertEqual(self.registry.lookup(Storage), (disk, True))

    def testProtocolCapabilityMatch(self):
        friend = Friend(5)
        self.registry.register_as("someone", friend)
        self.assertEqual(self.registry.lookup(Greeter), (friend, True))

    def testAmbiguousCapabilityNotFound(self):
        self.registry.register_as("one", DiskStorage("/a")).register_as("two", MemoryStorage())
        self.assertEqual(self.registry.lookup(Storage), (None, False))

    def testAliasValidation(self):
        with self.assertRaises(TypeError):
            self.registry.register_as(Storage, MemoryStorage())
        with self.assertRaises(ValueError):
            self.registry.register_as("  ", MemoryStorage())

    def testIterationListsKeys(self):
        self.registry.register(Friend(1)).register_as("storage", MemoryStorage())
        self.assertEqual(list(self.registry), [Friend, "storage"])


if __name__ == "__main__":
    unittest.main()
