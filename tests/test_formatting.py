import unittest

from listener.formatting import format_sip_message


class FormatSipMessageTests(unittest.TestCase):
    def test_empty_inputs(self):
        self.assertEqual(format_sip_message(None), "")
        self.assertEqual(format_sip_message(""), "")

    def test_numbers_lines(self):
        message = "REGISTER sip:example.com SIP/2.0\r\nContent-Length: 0\r\n"
        self.assertEqual(
            format_sip_message(message),
            "1: REGISTER sip:example.com SIP/2.0\n2: Content-Length: 0",
        )

    def test_skips_blank_lines(self):
        message = "REGISTER sip:example.com SIP/2.0\r\n\r\n   \nContent-Length: 0\r\n"
        self.assertEqual(
            format_sip_message(message),
            "1: REGISTER sip:example.com SIP/2.0\n2: Content-Length: 0",
        )

    def test_bare_newlines(self):
        self.assertEqual(format_sip_message("SIP/2.0 200 OK\nCSeq: 1 REGISTER"),
                         "1: SIP/2.0 200 OK\n2: CSeq: 1 REGISTER")

    def test_line_content_is_not_trimmed(self):
        self.assertEqual(format_sip_message("a\r\n  folded value  \r\n"), "1: a\n2:   folded value  ")

    def test_single_line_has_no_trailing_newline(self):
        self.assertEqual(format_sip_message("REGISTER sip:example.com SIP/2.0"),
                         "1: REGISTER sip:example.com SIP/2.0")

    def test_pure(self):
        message = "SIP/2.0 200 OK\r\nVia: SIP/2.0/UDP 10.0.0.1\r\n\r\n"
        self.assertEqual(format_sip_message(message), format_sip_message(message))


if __name__ == "__main__":
    unittest.main()
