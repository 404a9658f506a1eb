import unittest

from bs4 import BeautifulSoup

from html_extractor import (
    extract_main_text,
    extract_media,
    extract_urls_from_style,
    is_decorative_url,
    normalize_https,
    select_main_text,
)

REPLY_AND_MAIN = """
<div class="tgme_widget_message" data-post="chan/1">
  <a class="tgme_widget_message_reply" href="https://t.me/chan/0">
    <i class="tgme_widget_message_user_photo" style="background-image:url('//cdn.example.org/userpic/1.jpg')"></i>
    <div class="tgme_widget_message_text js-message_reply_text">quoted text</div>
    <i class="link_preview_image" style="background-image:url('https://cdn.example.org/quoted.jpg')"></i>
  </a>
  <div class="tgme_widget_message_text js-message_text">first line<br/><br/><br/>second line</div>
</div>
"""


def parse(html: str):
    return BeautifulSoup(html, "html.parser")


class NormalizeHttpsTests(unittest.TestCase):
    def test_protocol_relative_and_insecure_urls(self) -> None:
        self.assertEqual(normalize_https("//cdn.example.org/a.jpg"), "https://cdn.example.org/a.jpg")
        self.assertEqual(normalize_https("http://cdn.example.org/a.jpg?x=1"), "https://cdn.example.org/a.jpg?x=1")
        self.assertEqual(normalize_https("https://cdn.example.org/a.jpg"), "https://cdn.example.org/a.jpg")

    def test_empty_input_yields_empty_string(self) -> None:
        self.assertEqual(normalize_https(None), "")
        self.assertEqual(normalize_https(""), "")

    def test_unrecognized_form_passes_through(self) -> None:
        self.assertEqual(normalize_https("data:image/png;base64,AAA"), "data:image/png;base64,AAA")

    def test_idempotent(self) -> None:
        for value in ["//a/b", "http://a/b", "https://a/b", "", None, "relative/path"]:
            once = normalize_https(value)
            self.assertEqual(normalize_https(once), once)


class StyleAndFilterTests(unittest.TestCase):
    def test_extract_urls_from_style(self) -> None:
        style = "width:10px;background-image:url('https://a/1.jpg');background:url(\"//b/2.jpg\")"
        self.assertEqual(extract_urls_from_style(style), ["https://a/1.jpg", "//b/2.jpg"])
        self.assertEqual(extract_urls_from_style(None), [])
        self.assertEqual(extract_urls_from_style("color:red"), [])

    def test_is_decorative_url(self) -> None:
        self.assertTrue(is_decorative_url("https://telegram.org/img/emoji/40/F09F9880.png"))
        self.assertTrue(is_decorative_url("https://cdn.example.org/userpic/1.jpg"))
        self.assertTrue(is_decorative_url("https://cdn.example.org/avatar.png"))
        self.assertTrue(is_decorative_url("https://cdn.example.org/icon.svg"))
        self.assertFalse(is_decorative_url("https://cdn.example.org/photo.jpg"))


class SelectMainTextTests(unittest.TestCase):
    def test_prefers_primary_block_over_quoted_reply(self) -> None:
        soup = parse(REPLY_AND_MAIN)
        element = select_main_text(soup)
        self.assertIsNotNone(element)
        self.assertIn("js-message_text", element.get("class"))
        self.assertEqual(extract_main_text(soup), "first line\nsecond line")

    def test_takes_last_specific_match(self) -> None:
        soup = parse(
            '<div><div class="tgme_widget_message_text js-message_text">old</div>'
            '<div class="tgme_widget_message_text js-message_text">new</div></div>'
        )
        self.assertEqual(extract_main_text(soup), "new")

    def test_generic_fallback_skips_reply_marker(self) -> None:
        soup = parse(
            '<div><div class="tgme_widget_message_text">generic</div>'
            '<div class="tgme_widget_message_text js-message_reply_text">quoted</div></div>'
        )
        self.assertEqual(extract_main_text(soup), "generic")

    def test_only_reply_text_yields_none(self) -> None:
        soup = parse('<div><div class="tgme_widget_message_text js-message_reply_text">quoted</div></div>')
        self.assertIsNone(select_main_text(soup))

    def test_no_text_element_yields_none(self) -> None:
        soup = parse('<div class="tgme_widget_message"><time datetime="2026-01-01T00:00:00+00:00"></time></div>')
        self.assertIsNone(select_main_text(soup))
        self.assertIsNone(extract_main_text(soup))

    def test_whitespace_only_text_yields_none(self) -> None:
        soup = parse('<div><div class="tgme_widget_message_text js-message_text">  \n </div></div>')
        self.assertIsNone(extract_main_text(soup))

    def test_extraction_leaves_source_tree_untouched(self) -> None:
        soup = parse(REPLY_AND_MAIN)
        extract_main_text(soup)
        extract_media(soup)
        self.assertEqual(len(soup.select("br")), 3)
        self.assertEqual(len(soup.select(".tgme_widget_message_reply")), 1)


class ExtractMediaTests(unittest.TestCase):
    def test_collects_images_styles_and_videos(self) -> None:
        soup = parse(
            """
            <div class="tgme_widget_message">
              <div class="tgme_widget_message_grouped_wrap">
                <a class="tgme_widget_message_photo_wrap" style="background-image:url('//cdn.example.org/p1.jpg')"></a>
                <a class="tgme_widget_message_photo_wrap" style="background-image:url('http://cdn.example.org/p2.jpg')"></a>
              </div>
              <div class="tgme_widget_message_video_player">
                <video src="//cdn.example.org/v1.mp4"></video>
                <video><source src="http://cdn.example.org/v2.mp4"/></video>
              </div>
              <div class="tgme_widget_message_text js-message_text">
                text <img src="//telegram.org/img/emoji/40/1.png"/> <img src="https://cdn.example.org/inline.jpg"/>
              </div>
            </div>
            """
        )
        images, videos = extract_media(soup)
        self.assertEqual(
            images,
            [
                "https://cdn.example.org/inline.jpg",
                "https://cdn.example.org/p1.jpg",
                "https://cdn.example.org/p2.jpg",
            ],
        )
        self.assertEqual(videos, ["https://cdn.example.org/v1.mp4", "https://cdn.example.org/v2.mp4"])

    def test_quoted_reply_media_is_not_attributed(self) -> None:
        soup = parse(
            """
            <div class="tgme_widget_message">
              <div class="media_supported_cont">
                <a class="tgme_widget_message_reply">
                  <i style="background-image:url('https://cdn.example.org/quoted.jpg')"></i>
                </a>
                <a class="tgme_widget_message_photo_wrap" style="background-image:url('https://cdn.example.org/own.jpg')"></a>
              </div>
            </div>
            """
        )
        images, videos = extract_media(soup)
        self.assertEqual(images, ["https://cdn.example.org/own.jpg"])
        self.assertEqual(videos, [])

    def test_never_returns_decorative_urls(self) -> None:
        soup = parse(
            """
            <div class="tgme_widget_message">
              <div class="tgme_widget_message_text js-message_text">
                <img src="https://cdn.example.org/a.jpg"/>
                <img src="https://cdn.example.org/userpic/2.jpg"/>
                <img src="https://cdn.example.org/emoji/3.png"/>
                <i style="background-image:url('https://cdn.example.org/icon.svg')"></i>
                <i style="background-image:url('https://cdn.example.org/avatar/4.jpg')"></i>
                <i style="background-image:url('https://cdn.example.org/b.jpg')"></i>
              </div>
            </div>
            """
        )
        images, _ = extract_media(soup)
        self.assertEqual(images, ["https://cdn.example.org/a.jpg", "https://cdn.example.org/b.jpg"])
        self.assertFalse(any(is_decorative_url(url) for url in images))

    def test_overlapping_containers_deduplicate(self) -> None:
        soup = parse(
            """
            <div class="tgme_widget_message">
              <div class="tgme_widget_message_grouped_wrap">
                <a class="tgme_widget_message_photo_wrap" style="background-image:url('//cdn.example.org/p1.jpg')"></a>
              </div>
              <a class="tgme_widget_message_photo_wrap" style="background-image:url('https://cdn.example.org/p1.jpg')"></a>
            </div>
            """
        )
        images, _ = extract_media(soup)
        self.assertEqual(images, ["https://cdn.example.org/p1.jpg"])

    def test_no_media_returns_empty_lists(self) -> None:
        images, videos = extract_media(parse('<div class="tgme_widget_message">plain</div>'))
        self.assertEqual((images, videos), ([], []))


if __name__ == "__main__":
    unittest.main()
