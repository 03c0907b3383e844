import unittest

from stancevoice.bucket_store import StanceBucket
from stancevoice.style_composer import (
    StyleComposer,
    boost_learned,
    clamp_retention,
    isolate_learned,
    merge_with_retention,
    trim_to_retention,
)
from stancevoice.style_lexicon import DEFAULT_TEMPLATES, empty_lexicon, normalize_lexicon


BASE_TEMPLATES = ["b1", "b2", "b3", "b4", "b5"]


def _bucket(templates, **categories):
    lexicon = empty_lexicon()
    for key, tokens in categories.items():
        lexicon[key] = list(tokens)
    return StanceBucket(templates=list(templates), lexicon=lexicon)


class TestRetention(unittest.TestCase):
    def test_trim_keeps_at_least_one(self):
        self.assertEqual(trim_to_retention(["a", "b", "c"], 0.0), ["a"])
        self.assertEqual(trim_to_retention(["a", "b", "c"], 0.5), ["a"])
        self.assertEqual(trim_to_retention(["a", "b", "c", "d"], 0.5), ["a", "b"])
        self.assertEqual(trim_to_retention(["a", "b"], 1.0), ["a", "b"])
        self.assertEqual(trim_to_retention([], 0.5), [])

    def test_merge_without_learned_returns_base(self):
        self.assertEqual(merge_with_retention([], BASE_TEMPLATES, 0.1), BASE_TEMPLATES)

    def test_merge_puts_learned_first_and_dedupes(self):
        merged = merge_with_retention(["n1", "b1", "n2"], BASE_TEMPLATES, 0.5)
        self.assertEqual(merged, ["n1", "b1", "n2", "b2"])

    def test_clamp_retention(self):
        self.assertEqual(clamp_retention(1.7, 0.5), 1.0)
        self.assertEqual(clamp_retention(-2, 0.5), 0.0)
        self.assertEqual(clamp_retention("high", 0.5), 0.5)
        self.assertEqual(clamp_retention(float("nan"), 0.5), 0.5)


class TestStyleComposer(unittest.TestCase):
    def test_retention_bound_on_templates(self):
        bucket = _bucket(BASE_TEMPLATES + ["n1", "n2", "n3"])
        for retention in (0.0, 0.2, 0.5, 0.8):
            config = StyleComposer(template_retention=retention).compose(
                stance="neutral",
                bucket=bucket,
                base_templates=BASE_TEMPLATES,
                base_lexicon={},
            )
            self.assertEqual(config.templates[:3], ["n1", "n2", "n3"])
            tail = config.templates[3:]
            self.assertLessEqual(len(tail), max(1, int(len(BASE_TEMPLATES) * retention)))
            self.assertEqual(tail, BASE_TEMPLATES[: len(tail)])

    def test_unlearned_bucket_returns_base_untouched(self):
        config = StyleComposer(template_retention=0.0).compose(
            stance="supportive",
            bucket=_bucket(BASE_TEMPLATES, nouns=["pattern"]),
            base_templates=BASE_TEMPLATES,
            base_lexicon={"nouns": ["pattern"]},
        )
        self.assertEqual(config.templates, BASE_TEMPLATES)
        self.assertEqual(config.lexicon["nouns"], ["pattern"])
        self.assertEqual(config.stance, "supportive")

    def test_boosting_doubles_learned_tokens_adjacently(self):
        base_lexicon = {"nouns": ["pattern", "signal", "form", "presence"], "verbs": ["sense"]}
        bucket = _bucket(["b1"], nouns=["pattern", "signal", "form", "presence", "wave", "tide"], verbs=["sense"])
        config = StyleComposer(lexicon_retention=0.5).compose(
            stance="neutral",
            bucket=bucket,
            base_templates=["b1"],
            base_lexicon=base_lexicon,
        )
        self.assertEqual(config.lexicon["nouns"], ["wave", "wave", "tide", "tide", "pattern", "signal"])
        self.assertEqual(config.lexicon["verbs"], ["sense"])

    def test_fallback_is_composition_target(self):
        bucket = _bucket(["b1", "learned"], nouns=["pattern", "echo"])
        config = StyleComposer().compose(
            stance="neutral",
            bucket=bucket,
            base_templates=["b1"],
            base_lexicon={"nouns": ["pattern"]},
            fallback={"templates": ["f1", "f2"], "lexicon": {"nouns": ["fallback-noun"]}},
        )
        self.assertEqual(config.templates, ["learned", "f1"])
        self.assertEqual(config.lexicon["nouns"], ["echo", "echo", "fallback-noun"])

    def test_missing_bucket_uses_fallback_or_defaults(self):
        composer = StyleComposer()
        with_fallback = composer.compose(
            stance="neutral",
            bucket=None,
            base_templates=[],
            base_lexicon={},
            fallback={"templates": ["f1"], "lexicon": {"nouns": ["n"]}},
        )
        self.assertEqual(with_fallback.templates, ["f1"])
        self.assertEqual(with_fallback.lexicon["nouns"], ["n"])
        defaults = composer.compose(stance="neutral", bucket=None, base_templates=[], base_lexicon={})
        self.assertEqual(defaults.templates, list(DEFAULT_TEMPLATES))
        self.assertEqual(defaults.lexicon["nouns"], ["form", "awareness", "presence"])

    def test_isolate_and_boost_helpers(self):
        learned = isolate_learned(_bucket(["b1", "x"], adverbs=["gently", "softly"]), ["b1"], {"adverbs": ["gently"]})
        self.assertEqual(learned.templates, ["x"])
        self.assertEqual(learned.lexicon["adverbs"], ["softly"])
        boosted = boost_learned(normalize_lexicon({"adverbs": ["softly", "gently"]}), learned.lexicon)
        self.assertEqual(boosted["adverbs"], ["softly", "softly", "gently"])

    def test_to_dict_copies_lists(self):
        config = StyleComposer().compose(stance="neutral", bucket=None, base_templates=["b"], base_lexicon={})
        payload = config.to_dict()
        payload["templates"].append("x")
        self.assertEqual(config.templates, ["b"])


if __name__ == "__main__":
    unittest.main()
