from __future__ import annotations

import random


MAX_WORD_LENGTH = 32

ENGLISH = 0
GERMAN = 1

DEFAULT_WORDS_EN = [
    "apple", "airplane", "alligator", "anchor", "angel", "ant", "astronaut", "avocado",
    "backpack", "balloon", "banana", "barbecue", "basketball", "bat", "beach", "bear",
    "bee", "bicycle", "bird", "birthday cake", "blanket", "boat", "bone", "book",
    "bottle", "bowling", "bread", "bridge", "broom", "bubble", "bucket", "butterfly",
    "cactus", "camera", "campfire", "candle", "candy", "car", "carrot", "castle",
    "cat", "caterpillar", "chair", "cheese", "cherry", "chicken", "chimney", "clock",
    "cloud", "clown", "coconut", "coffee", "comet", "compass", "computer", "cookie",
    "cow", "crab", "crown", "cupcake", "dinosaur", "dog", "dolphin", "donut",
    "door", "dragon", "drum", "duck", "eagle", "ear", "earth", "egg",
    "elephant", "envelope", "eye", "feather", "fence", "fire truck", "fireworks", "fish",
    "flag", "flamingo", "flower", "fork", "fountain", "fox", "frog", "garden",
    "ghost", "giraffe", "glasses", "glove", "goat", "guitar", "hamburger", "hammer",
    "hat", "headphones", "heart", "hedgehog", "helicopter", "hippo", "honey", "horse",
    "hot dog", "house", "ice cream", "igloo", "island", "jellyfish", "kangaroo", "key",
    "kite", "knife", "koala", "ladder", "lamp", "lemon", "light bulb", "lighthouse",
    "lion", "lizard", "lollipop", "magnet", "mailbox", "map", "mermaid", "microphone",
    "monkey", "moon", "mountain", "mouse", "mushroom", "necklace", "nest", "ninja",
    "octopus", "owl", "paintbrush", "palm tree", "panda", "parachute", "parrot", "peacock",
    "pencil", "penguin", "piano", "pig", "pillow", "pineapple", "pirate", "pizza",
    "planet", "popcorn", "potato", "pumpkin", "queen", "rabbit", "rainbow", "robot",
    "rocket", "roller coaster", "sandwich", "saxophone", "scarecrow", "scissors", "shark", "sheep",
    "ship", "skateboard", "skeleton", "snail", "snake", "snowman", "sock", "spider",
    "spoon", "squirrel", "star", "strawberry", "submarine", "sun", "sunflower", "swan",
    "sword", "t-shirt", "table", "telescope", "tent", "tiger", "toaster", "tomato",
    "toothbrush", "tornado", "tractor", "train", "treasure", "tree", "trophy", "truck",
    "turtle", "umbrella", "unicorn", "vampire", "violin", "volcano", "waffle", "watermelon",
    "whale", "windmill", "witch", "wizard", "yo-yo", "zebra", "zipper", "zombie",
]

DEFAULT_WORDS_DE = [
    "apfel", "auto", "ballon", "banane", "baum", "biene", "blume", "boot",
    "brief", "brille", "brot", "brücke", "buch", "burg", "drache", "eis",
    "elefant", "ente", "esel", "fahrrad", "feuer", "fisch", "flasche", "flugzeug",
    "frosch", "gabel", "geist", "giraffe", "gitarre", "haus", "herz", "hexe",
    "hund", "hut", "igel", "insel", "kaktus", "kamera", "katze", "kerze",
    "kirsche", "klavier", "krone", "kuchen", "kuh", "lampe", "leiter", "löwe",
    "maus", "mond", "pferd", "pilz", "pinguin", "pirat", "rakete", "regenbogen",
    "roboter", "schaf", "schiff", "schlange", "schlüssel", "schnecke", "schneemann", "sonne",
    "spinne", "stern", "stuhl", "tisch", "tomate", "uhr", "vogel", "vulkan",
    "wal", "wolke", "zahnbürste", "zebra", "zelt", "zitrone", "zug", "zwerg",
]


class WordBank:
    """Read-only word lists keyed by language id."""

    def __init__(self, lists: dict[int, list[str]] | None = None, default_language: int = ENGLISH) -> None:
        self._lists = lists if lists is not None else {ENGLISH: DEFAULT_WORDS_EN, GERMAN: DEFAULT_WORDS_DE}
        self.default_language = default_language

    def languages(self) -> list[int]:
        return sorted(self._lists)

    def has_language(self, language: int) -> bool:
        return language in self._lists

    def words(self, language: int) -> list[str]:
        return self._lists.get(language) or self._lists[self.default_language]

    def pick(
        self,
        language: int,
        count: int,
        custom_words: list[str] | None = None,
        custom_only: bool = False,
        min_custom: int = 0,
        rng: random.Random | None = None,
    ) -> list[str]:
        custom = list(dict.fromkeys(custom_words or []))
        if custom_only and custom and len(custom) >= min_custom:
            pool = custom
        else:
            pool = list(dict.fromkeys(custom + self.words(language)))
        return pick_words(pool, count, rng=rng)


def parse_custom_words(raw) -> list[str]:
    """Accept a comma separated string or a list; drop blanks and over-long entries."""
    if isinstance(raw, str):
        items = raw.split(",")
    elif isinstance(raw, (list, tuple)):
        items = [w for w in raw if isinstance(w, str)]
    else:
        return []
    words = []
    for w in items:
        w = w.strip()
        if w and len(w) <= MAX_WORD_LENGTH:
            words.append(w)
    return list(dict.fromkeys(words))


def pick_words(words: list[str], count: int, rng: random.Random | None = None) -> list[str]:
    if count <= 0 or not words:
        return []
    r = rng or random
    return r.sample(words, min(count, len(words)))
