from fingerspell_client.main import word_key_label


def test_word_key_label_without_resolution():
    assert word_key_label(None) == "Word key: -"


def test_word_key_label_shows_romanized_key():
    assert word_key_label(("さき", "先")) == "Word key: saki"
