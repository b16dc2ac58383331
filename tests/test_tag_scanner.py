import time

from django.test import TestCase

from django_shortcodes.util.tag_scanner import TagOccurrence, TextSegment, scan

from .django_test_setup import setup_test_config

setup_test_config()


class TagScannerTests(TestCase):
    def _tags(self, text, **kwargs):
        return [segment for segment in scan(text, **kwargs) if isinstance(segment, TagOccurrence)]

    def test_plain_text(self):
        self.assertEqual(scan("No shortcodes [here"), [TextSegment(text="No shortcodes [here", start_index=0)])

    def test_empty_text(self):
        self.assertEqual(scan(""), [])

    def test_segments(self):
        text = 'Hello [user id=3 /]! [quote author="Ann"]Be kind[/quote] [[user]]'
        segments = scan(text)

        self.assertEqual(
            segments,
            [
                TextSegment(text="Hello ", start_index=0),
                TagOccurrence(
                    name="user",
                    arguments={"id": "3"},
                    content=None,
                    is_self_closing=True,
                    escaped=False,
                    start_index=6,
                    end_index=19,
                    text="[user id=3 /]",
                ),
                TextSegment(text="! ", start_index=19),
                TagOccurrence(
                    name="quote",
                    arguments={"author": "Ann"},
                    content="Be kind",
                    is_self_closing=False,
                    escaped=False,
                    start_index=21,
                    end_index=56,
                    text='[quote author="Ann"]Be kind[/quote]',
                ),
                TextSegment(text=" ", start_index=56),
                TagOccurrence(
                    name="user",
                    arguments={},
                    content=None,
                    is_self_closing=False,
                    escaped=True,
                    start_index=57,
                    end_index=65,
                    text="[[user]]",
                ),
            ],
        )

    def test_segments_reconstruct_text(self):
        text = "a [b]c[/b] [d /] [/e] [[f]] g"
        segments = scan(text)
        self.assertEqual("".join(segment.text for segment in segments), text)

    def test_tag_names(self):
        tags = self._tags("[a] [a_b] [2] [Caps]")
        self.assertEqual([tag.name for tag in tags], ["a", "a_b", "2", "Caps"])

    def test_invalid_tags_are_text(self):
        for text in ["[not-a-tag]", "[ spaced]", '[tag "value"]', "[tag=1]", "[]", "[/]"]:
            with self.subTest(text=text):
                self.assertEqual(scan(text), [TextSegment(text=text, start_index=0)])

    def test_self_closing(self):
        for text in ["[img/]", "[img /]", "[img,/]", "[img, /]", '[img src="a.png"/]', "[img src=a.png /]"]:
            with self.subTest(text=text):
                tags = self._tags(text)
                self.assertEqual(len(tags), 1)
                self.assertTrue(tags[0].is_self_closing)
                self.assertIsNone(tags[0].content)

    def test_self_closing_never_pairs(self):
        tags = self._tags("[a /]x[/a]")
        self.assertEqual(len(tags), 1)
        self.assertEqual(tags[0].text, "[a /]")
        self.assertEqual(scan("[a /]x[/a]")[-1], TextSegment(text="x[/a]", start_index=5))

    def test_unquoted_value_with_slash(self):
        tags = self._tags("[link href=/about/team]")
        self.assertEqual(tags[0].arguments, {"href": "/about/team"})
        self.assertFalse(tags[0].is_self_closing)

    def test_paired_tag_content(self):
        tags = self._tags("[b]bold [i]and italic[/i][/b]")
        self.assertEqual(len(tags), 1)
        self.assertEqual(tags[0].name, "b")
        self.assertEqual(tags[0].content, "bold [i]and italic[/i]")

    def test_nested_tags_with_same_name(self):
        tags = self._tags("[t]a[t]b[/t]c[/t]")
        self.assertEqual(len(tags), 1)
        self.assertEqual(tags[0].content, "a[t]b[/t]c")
        self.assertEqual(tags[0].end_index, 17)

    def test_unclosed_tag_inside_paired_tag(self):
        tags = self._tags("[a]x[b]y[/a]")
        self.assertEqual(len(tags), 1)
        self.assertEqual(tags[0].name, "a")
        self.assertEqual(tags[0].content, "x[b]y")

    def test_unclosed_tag_has_no_content(self):
        tags = self._tags("[a]x[b]y[/b]")
        self.assertEqual([(tag.name, tag.content) for tag in tags], [("a", None), ("b", "y")])

    def test_empty_content(self):
        tags = self._tags("[a][/a]")
        self.assertEqual(tags[0].content, "")

    def test_stray_closing_tag_is_text(self):
        self.assertEqual(scan("a[/b]c"), [TextSegment(text="a[/b]c", start_index=0)])

    def test_escaped_tags(self):
        tags = self._tags("[[a]] [[b /]] [[c]x[/c]]")
        self.assertEqual([tag.escaped for tag in tags], [True, True, True])
        self.assertEqual([tag.unescaped_text for tag in tags], ["[a]", "[b /]", "[c]x[/c]"])

    def test_escaped_tag_followed_by_tag(self):
        tags = self._tags("[[a]][a]x[/a]")
        self.assertEqual([(tag.escaped, tag.content) for tag in tags], [(True, None), (False, "x")])

    def test_half_escaped_tag_keeps_extra_bracket(self):
        segments = scan("[[a]x")
        self.assertEqual(segments[0], TextSegment(text="[", start_index=0))
        self.assertIsInstance(segments[1], TagOccurrence)
        self.assertEqual(segments[1].text, "[a]")  # type: ignore[union-attr]
        self.assertFalse(segments[1].escaped)  # type: ignore[union-attr]

    def test_doubled_brackets_around_text(self):
        text = "[[Not a tag [a]x[/a] ]]"
        tags = self._tags(text)
        self.assertEqual(len(tags), 1)
        self.assertEqual(tags[0].text, "[a]x[/a]")
        self.assertFalse(tags[0].escaped)

    def test_bare_argument(self):
        tags = self._tags("[see note]")
        self.assertEqual(tags[0].name, "see")
        self.assertEqual(tags[0].arguments, {"note": ""})

    def test_range(self):
        text = '<a href="[link]">[b]</a>'
        tags = self._tags(text, start=9, end=15)
        self.assertEqual([tag.name for tag in tags], ["link"])

        segments = scan(text, 9, 15)
        self.assertEqual(segments, [tags[0]])

    def test_opaque_spans(self):
        text = '[a title="<b>"] [c]'
        tags = self._tags(text, opaque_spans=[(10, 13)])
        self.assertEqual([tag.name for tag in tags], ["c"])

    def test_opaque_spans_do_not_split_content(self):
        text = "[a]<b>x</b>[/a]"
        tags = self._tags(text, opaque_spans=[(3, 6), (7, 11)])
        self.assertEqual(len(tags), 1)
        self.assertEqual(tags[0].content, "<b>x</b>")

    def test_assign_followed_by_whitespace(self):
        tags = self._tags("[t a= b, c=, d= /]")
        self.assertEqual(tags[0].arguments, {"a": "b", "c": "", "d": ""})
        self.assertTrue(tags[0].is_self_closing)

    def test_unterminated_tag_with_many_arguments_is_fast(self):
        text = "[t" + " a= b" * 40
        start = time.perf_counter()
        segments = scan(text)
        elapsed = time.perf_counter() - start

        self.assertEqual(segments, [TextSegment(text=text, start_index=0)])
        self.assertLess(elapsed, 1)
