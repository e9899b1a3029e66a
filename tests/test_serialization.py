import unittest

from oro_client.serialization import (
    JSONDecodeError,
    canonicalize,
    fast_json_dumps,
    fast_json_loads,
    stable_json_dumps,
)


class SerializationTests(unittest.TestCase):
    def test_stable_json_dumps_is_deterministic(self) -> None:
        a = {"b": 1, "a": {"z": 3, "y": 2}}
        b = {"a": {"y": 2, "z": 3}, "b": 1}
        self.assertEqual(stable_json_dumps(a), stable_json_dumps(b))

    def test_canonicalize_sets_and_tuples(self) -> None:
        self.assertEqual(canonicalize({"s": {3, 1, 2}, "t": (1, 2)}), {"s": [1, 2, 3], "t": [1, 2]})

    def test_fast_json_preserves_key_order(self) -> None:
        doc = fast_json_loads(b'{"versions":{"2.0.0":{},"0.1.0":{},"1.0.0":{}}}')
        self.assertEqual(list(doc["versions"]), ["2.0.0", "0.1.0", "1.0.0"])
        self.assertEqual(fast_json_dumps(doc), b'{"versions":{"2.0.0":{},"0.1.0":{},"1.0.0":{}}}')

    def test_decode_error_is_value_error(self) -> None:
        with self.assertRaises(JSONDecodeError):
            fast_json_loads(b"{nope")
        self.assertTrue(issubclass(JSONDecodeError, ValueError))


if __name__ == "__main__":
    unittest.main()
