import unittest

from stancevoice.style_lexicon import DEFAULT_TEMPLATES
from stancevoice.taste_config import (
    TasteConfig,
    TasteConfigMerger,
    merge_lexicon_override,
    merge_syntax_override,
)


class TestTasteConfig(unittest.TestCase):
    def test_empty_config_defers_to_defaults(self):
        taste = TasteConfig.from_payload(None)
        self.assertEqual(taste.base_templates(), list(DEFAULT_TEMPLATES))
        self.assertEqual(taste.base_lexicon()["adverbs"], ["now", "fully", "deeply"])

    def test_authored_lexicon_is_normalized(self):
        taste = TasteConfig.from_payload({"templates": ["t"], "lexicon": {"nouns": ["pattern"], "bogus": ["x"]}})
        lexicon = taste.base_lexicon()
        self.assertEqual(lexicon["nouns"], ["pattern"])
        self.assertEqual(lexicon["adverbs"], [])
        self.assertNotIn("bogus", lexicon)


class TestLexiconOverride(unittest.TestCase):
    def test_flat_override_unions_after_base(self):
        merged = merge_lexicon_override(
            {"nouns": ["pattern", "signal"]},
            {"nouns": ["signal", "tide", "", None], "adverbs": ["softly"]},
        )
        self.assertEqual(merged["nouns"], ["pattern", "signal", "tide"])
        self.assertEqual(merged["adverbs"], ["softly"])

    def test_named_sources_merge_in_iteration_order(self):
        merged = merge_lexicon_override(
            {"verbs": ["sense"]},
            {
                "poet": {"verbs": ["drift", "sense"]},
                "critic": {"verbs": ["weigh", "drift"]},
                "ignored": "not a mapping",
            },
        )
        self.assertEqual(merged["verbs"], ["sense", "drift", "weigh"])


class TestSyntaxOverride(unittest.TestCase):
    def test_flat_syntax_goes_ahead_of_base(self):
        merged = merge_syntax_override(
            ["base one", "shared"],
            {"self": ["mine", "shared"], "otherSpeaker": ["theirs", "mine"]},
        )
        self.assertEqual(merged, ["mine", "shared", "theirs", "base one"])

    def test_named_personas_are_collected(self):
        merged = merge_syntax_override(
            ["base"],
            {"alpha": {"self": ["a1"]}, "beta": {"otherSpeaker": ["b1", "a1"]}},
        )
        self.assertEqual(merged, ["a1", "b1", "base"])

    def test_no_templates_keeps_base(self):
        self.assertEqual(merge_syntax_override(["base"], {"alpha": {"self": []}}), ["base"])


class TestTasteConfigMerger(unittest.TestCase):
    def test_merge_is_non_destructive(self):
        taste = TasteConfig.from_payload({"templates": ["t1"], "lexicon": {"nouns": ["n1"]}})
        merged = TasteConfigMerger().merge(taste, lexicon={"nouns": ["n2"]}, syntax={"self": ["t0"]})
        self.assertEqual(merged.base_templates(), ["t0", "t1"])
        self.assertEqual(merged.base_lexicon()["nouns"], ["n1", "n2"])
        self.assertEqual(taste.base_templates(), ["t1"])

    def test_merging_onto_defaults(self):
        merged = TasteConfigMerger().merge(TasteConfig(), lexicon={"nouns": ["n2"]})
        self.assertEqual(merged.base_lexicon()["nouns"], ["form", "awareness", "presence", "n2"])
        self.assertEqual(merged.base_templates(), list(DEFAULT_TEMPLATES))


if __name__ == "__main__":
    unittest.main()
