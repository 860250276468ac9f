import base64, unittest
from email import message_from_bytes, policy
from gmail_tool.builder import (
    build_raw_email,
    build_raw_email_with_attachments,
    new_boundary,
    reply_headers,
    reply_subject,
    sanitize_header_value,
    wrap_base64,
)
from gmail_tool.types import ResolvedAttachment

def decode_raw(raw: str) -> bytes:
    return base64.urlsafe_b64decode(raw.encode())

def attachment(name: str, data: bytes, mime: str = "application/octet-stream") -> ResolvedAttachment:
    return ResolvedAttachment(filename=name, mime_type=mime, base64_data=base64.b64encode(data).decode())

class TestPlainMessage(unittest.TestCase):
    def test_plain_layout(self):
        raw = build_raw_email("a@x.com", "Hi", "body text", "text/plain")
        self.assertEqual(
            decode_raw(raw).decode(),
            'To: a@x.com\r\nSubject: Hi\r\nMIME-Version: 1.0\r\n'
            'Content-Type: text/plain; charset="UTF-8"\r\n\r\nbody text',
        )

    def test_raw_is_url_safe(self):
        raw = build_raw_email("a@x.com", "??>>", "ÿÿÿ~~~" * 20, "text/html")
        self.assertNotIn("+", raw)
        self.assertNotIn("/", raw)
        self.assertIn(b'Content-Type: text/html; charset="UTF-8"', decode_raw(raw))

    def test_extra_headers_in_order_after_content_type(self):
        raw = build_raw_email("a@x.com", "Hi", "b", "text/plain", {"X-One": "1", "X-Two": "2"})
        text = decode_raw(raw).decode()
        self.assertLess(text.index("Content-Type:"), text.index("X-One: 1"))
        self.assertLess(text.index("X-One: 1"), text.index("X-Two: 2"))
        self.assertTrue(text.endswith("X-Two: 2\r\n\r\nb"))

class TestAttachmentMessage(unittest.TestCase):
    def test_no_attachments_matches_plain_path(self):
        self.assertEqual(
            build_raw_email_with_attachments("a@x.com", "Hi", "body", []),
            build_raw_email("a@x.com", "Hi", "body", "text/plain"),
        )

    def test_parts_in_input_order(self):
        atts = [
            attachment("one.pdf", b"%PDF-1.4 first", "application/pdf"),
            attachment("two.csv", b"a,b\n1,2\n", "text/csv"),
        ]
        raw = build_raw_email_with_attachments("a@x.com", "Files", "see attached", atts)
        msg = message_from_bytes(decode_raw(raw), policy=policy.default)

        self.assertEqual(msg.get_content_type(), "multipart/mixed")
        parts = list(msg.iter_parts())
        self.assertEqual(len(parts), 3)
        self.assertEqual(parts[0].get_content_type(), "text/plain")
        self.assertEqual(parts[0]["Content-Transfer-Encoding"], "7bit")
        self.assertIn("see attached", parts[0].get_content())
        self.assertEqual([p.get_filename() for p in parts[1:]], ["one.pdf", "two.csv"])
        self.assertEqual(parts[1].get_content_type(), "application/pdf")
        self.assertEqual(parts[1].get_payload(decode=True), b"%PDF-1.4 first")
        self.assertEqual(parts[2].get_payload(decode=True), b"a,b\n1,2\n")

    def test_closing_boundary_ends_message(self):
        raw = build_raw_email_with_attachments(
            "a@x.com", "Hi", "b", [attachment("x.bin", b"\x00\x01")], boundary="BOUND"
        )
        text = decode_raw(raw).decode()
        self.assertIn('Content-Type: multipart/mixed; boundary="BOUND"', text)
        self.assertTrue(text.endswith("--BOUND--"))
        self.assertEqual(text.count("--BOUND\r\n"), 2)

    def test_base64_lines_are_wrapped_at_76(self):
        data = bytes(range(256)) * 4
        raw = build_raw_email_with_attachments("a@x.com", "Hi", "b", [attachment("big.bin", data)], boundary="B")
        text = decode_raw(raw).decode()
        encoded = text.split("Content-Transfer-Encoding: base64\r\n\r\n", 1)[1].split("\r\n--B--", 1)[0]
        lines = encoded.split("\r\n")
        self.assertGreater(len(lines), 1)
        self.assertTrue(all(len(line) <= 76 for line in lines))
        self.assertEqual(base64.b64decode("".join(lines)), data)

    def test_filename_cannot_inject_headers(self):
        evil = 'evil"\r\nBcc: victim@example.com.pdf'
        raw = build_raw_email_with_attachments("a@x.com", "Hi", "b", [attachment(evil, b"x")])
        text = decode_raw(raw).decode()
        self.assertNotIn("\r\nBcc:", text)
        self.assertNotIn('evil"', text)
        self.assertIn('filename="evil___Bcc: victim@example.com.pdf"', text)
        self.assertIn('name="evil___Bcc: victim@example.com.pdf"', text)

    def test_boundaries_are_unique(self):
        self.assertNotEqual(new_boundary(), new_boundary())
        self.assertTrue(new_boundary().startswith("gmail_tool_boundary_"))

class TestHelpers(unittest.TestCase):
    def test_sanitize_header_value(self):
        self.assertEqual(sanitize_header_value('a"b\rc\nd'), "a_b_c_d")
        self.assertEqual(sanitize_header_value("report.pdf"), "report.pdf")

    def test_wrap_base64(self):
        self.assertEqual(wrap_base64("a" * 152), "a" * 76 + "\r\n" + "a" * 76)
        self.assertEqual(wrap_base64("abc"), "abc")
        self.assertEqual(wrap_base64(""), "")

    def test_reply_subject(self):
        self.assertEqual(reply_subject("Lunch"), "Re: Lunch")
        self.assertEqual(reply_subject("Re: Lunch"), "Re: Lunch")
        self.assertEqual(reply_subject("Re:Lunch"), "Re:Lunch")
        # only the exact prefix counts
        self.assertEqual(reply_subject("re: Lunch"), "Re: re: Lunch")
        self.assertEqual(reply_subject("Re : Lunch"), "Re: Re : Lunch")

    def test_reply_headers(self):
        self.assertEqual(reply_headers("m1"), {"In-Reply-To": "m1", "References": "m1"})

if __name__ == "__main__":
    unittest.main()
