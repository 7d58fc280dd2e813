from harvester.utils import absolute_url, clean_text, listing_page_url, unique


def test_listing_page_url_sets_page():
    url = listing_page_url("https://site.test/search/results?q=&sort=date", 4)

    assert url == "https://site.test/search/results?q=&sort=date&page=4"


def test_listing_page_url_replaces_existing_page():
    url = listing_page_url("https://site.test/search?page=2&q=x", 3)

    assert url == "https://site.test/search?q=x&page=3"


def test_absolute_url():
    assert absolute_url("/jane", "https://site.test") == "https://site.test/jane"
    assert absolute_url("https://other.test/x", "https://site.test") == "https://other.test/x"
    assert absolute_url("", "https://site.test") is None


def test_unique_keeps_order():
    assert unique(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]


def test_clean_text():
    assert clean_text("  Jane \n  Doe ") == "Jane Doe"
    assert clean_text(None) == ""
