import unittest

from animeproxy.attributes import AttributeListError, parse_attribute_list, split_directive


class AttributeListTests(unittest.TestCase):
    def test_split_directive(self):
        self.assertEqual(split_directive("#EXT-X-KEY:METHOD=NONE"), ("#EXT-X-KEY", 11))
        self.assertEqual(split_directive("#EXTM3U"), ("#EXTM3U", -1))

    def test_parse_mixed_values(self):
        line = '#EXT-X-KEY:METHOD=AES-128,URI="https://k.example/key?a=1,b=2",IV=0x1f'
        tag, offset = split_directive(line)
        attrs = parse_attribute_list(line, offset)
        self.assertEqual([attr.name for attr in attrs], ["METHOD", "URI", "IV"])
        self.assertEqual(attrs.get("METHOD").value, "AES-128")
        self.assertFalse(attrs.get("METHOD").quoted)
        uri = attrs.get("URI")
        self.assertTrue(uri.quoted)
        self.assertEqual(uri.value, "https://k.example/key?a=1,b=2")
        self.assertEqual(line[uri.start:uri.end], uri.value)
        self.assertEqual(attrs.get("IV").value, "0x1f")
        self.assertIsNone(attrs.get("KEYFORMAT"))

    def test_first_attribute_wins(self):
        attrs = parse_attribute_list('URI="a",URI="b"')
        self.assertEqual(attrs.get("URI").value, "a")

    def test_empty_quoted_value(self):
        attrs = parse_attribute_list('URI="",BYTERANGE="10@0"')
        self.assertEqual(attrs.get("URI").value, "")
        self.assertEqual(attrs.get("BYTERANGE").value, "10@0")

    def test_unterminated_quote(self):
        with self.assertRaises(AttributeListError):
            parse_attribute_list('METHOD=AES-128,URI="key.bin')


if __name__ == "__main__":
    unittest.main()
