import base64
import unittest

from animeproxy.codec import decode_segment, decode_token, encode_token, token_headers_blob
from animeproxy.errors import InvalidTokenError


class TokenCodecTests(unittest.TestCase):
    def test_round_trip(self):
        urls = [
            "https://cdn.example/videos/stream.m3u8",
            "http://example.com:8080/a/b?c=d&e=f#frag",
            "https://例え.jp/パス/セグメント.ts",
            "https://user:pass@[2001:db8::1]:443/x.ts",
            "https://a.b/?q=%20%2F",
        ]
        for url in urls:
            with self.subTest(url=url):
                self.assertEqual(decode_token(encode_token(url)), url)
                self.assertEqual(decode_token(encode_token(url, "Referer: x")), url)

    def test_token_shape(self):
        token = encode_token("https://a.b/c.ts")
        self.assertTrue(token.startswith("/anime/"))
        self.assertNotIn("?", token)
        encoded = token[len("/anime/"):]
        self.assertEqual(base64.urlsafe_b64decode(encoded).decode(), "https://a.b/c.ts")

    def test_headers_blob_encoded_once(self):
        blob = "referer=https://x.y/&a b"
        token = encode_token("https://a.b/c.ts", blob)
        self.assertIn("?headers=", token)
        self.assertNotIn(" ", token)
        self.assertEqual(token_headers_blob(token), blob)

    def test_already_escaped_blob_is_not_double_decoded(self):
        blob = "a%20b"
        token = encode_token("https://a.b/c.ts", blob)
        self.assertEqual(token_headers_blob(token), blob)

    def test_decode_ignores_query(self):
        token = encode_token("https://a.b/c.ts", "blob")
        self.assertEqual(decode_token(token), "https://a.b/c.ts")

    def test_padding_optional(self):
        encoded = base64.urlsafe_b64encode(b"https://a.b/c").decode()
        self.assertTrue(encoded.endswith("="))
        self.assertEqual(decode_segment(encoded.rstrip("=")), "https://a.b/c")
        self.assertEqual(decode_token("anime/" + encoded), "https://a.b/c")

    def test_invalid_tokens(self):
        bad = [
            "/other/aHR0cHM6Ly9hLmI=",
            "/anime/",
            "/anime/not base64!",
            "/anime/abcde",
            "/anime/" + base64.urlsafe_b64encode(b"\xff\xfe").decode(),
        ]
        for token in bad:
            with self.subTest(token=token):
                with self.assertRaises(InvalidTokenError) as ctx:
                    decode_token(token)
                self.assertEqual(ctx.exception.status_code, 400)


if __name__ == "__main__":
    unittest.main()
