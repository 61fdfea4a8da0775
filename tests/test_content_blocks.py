from reader_ingest.workflows.content_blocks import (
    ContentBlockParser,
    HtmlBlock,
    MediaBlock,
    blocks_to_dicts,
    extract_src,
    iter_media_spans,
    media_urls,
    parse_content_blocks,
)


def test_splits_markup_around_iframe():
    blocks = parse_content_blocks("<p>Hello</p><iframe src='https://x.com/e'></iframe><p>Bye</p>")
    assert blocks == [HtmlBlock("<p>Hello</p>"), MediaBlock("https://x.com/e"), HtmlBlock("<p>Bye</p>")]


def test_media_without_src_stays_as_markup():
    assert parse_content_blocks("<iframe></iframe>") == [HtmlBlock("<iframe></iframe>")]


def test_empty_input_yields_single_empty_block():
    assert parse_content_blocks("") == [HtmlBlock("")]


def test_whitespace_only_input_is_wrapped_verbatim():
    assert parse_content_blocks("  \n\t ") == [HtmlBlock("  \n\t ")]


def test_non_string_input_falls_back_to_single_block():
    assert ContentBlockParser().parse(None) == [HtmlBlock("")]
    assert ContentBlockParser().parse(b"<p>bytes</p>") == [HtmlBlock("")]


def test_whitespace_gaps_between_media_are_dropped():
    html = "<iframe src='https://a.example/1'></iframe>\n   <video src=\"https://b.example/v.mp4\"></video>\n"
    assert parse_content_blocks(html) == [
        MediaBlock("https://a.example/1"),
        MediaBlock("https://b.example/v.mp4"),
    ]


def test_matching_is_case_insensitive_and_spans_lines():
    html = '<p>a</p>\n<IFRAME\n  width="560"\n  SRC="https://www.youtube.com/embed/dQw4w9WgXcQ">\n</IFRAME>'
    blocks = parse_content_blocks(html)
    assert blocks == [HtmlBlock("<p>a</p>\n"), MediaBlock("https://www.youtube.com/embed/dQw4w9WgXcQ")]
    assert blocks[1].tag == "iframe"


def test_video_source_child_provides_url():
    html = '<video controls><source src="clip.mp4" type="video/mp4"></video>'
    assert parse_content_blocks(html) == [MediaBlock("clip.mp4")]


def test_data_src_is_not_the_src_attribute():
    html = '<iframe data-src="https://lazy.example" src="https://real.example"></iframe>'
    assert parse_content_blocks(html) == [MediaBlock("https://real.example")]


def test_empty_src_is_still_a_media_block():
    html = '<iframe src=""></iframe>'
    blocks = parse_content_blocks(html)
    assert blocks == [MediaBlock("")]
    assert blocks[0].raw == html


def test_src_value_is_kept_verbatim():
    assert parse_content_blocks('<iframe src=" https://a "></iframe>') == [MediaBlock(" https://a ")]
    assert extract_src("<iframe src=''></iframe>") == ""
    assert extract_src("<iframe></iframe>") is None


def test_unclosed_media_element_is_plain_markup():
    html = "<p>a</p><iframe src='https://x.example'><p>rest</p>"
    assert parse_content_blocks(html) == [HtmlBlock(html)]


def test_unclosed_iframe_does_not_hide_later_video():
    html = "<iframe src='x'><p>t</p><video src='v.mp4'></video><p>end</p>"
    assert parse_content_blocks(html) == [
        HtmlBlock("<iframe src='x'><p>t</p>"),
        MediaBlock("v.mp4"),
        HtmlBlock("<p>end</p>"),
    ]


def test_similar_tag_names_are_not_media():
    html = "<videos><p>list</p></videos><iframes></iframes>"
    assert parse_content_blocks(html) == [HtmlBlock(html)]


def test_blocks_cover_input_in_order():
    html = (
        "<h1>Title</h1>\n"
        "<iframe src=\"https://player.example/1\"></iframe>\n\n"
        "<p>Middle</p>"
        "<video><track kind='captions'></video>"
        "<VIDEO src='https://cdn.example/2.mp4'></VIDEO>  "
        "<p>Tail</p>"
    )
    blocks = parse_content_blocks(html)
    covered = []
    last_end = 0
    for block in blocks:
        text = block.html if isinstance(block, HtmlBlock) else block.raw
        assert block.offset >= last_end
        assert html[block.offset:block.end] == text
        assert not html[last_end:block.offset].strip()
        covered.append(text)
        last_end = block.end
    assert not html[last_end:].strip()
    assert media_urls(blocks) == ["https://player.example/1", "https://cdn.example/2.mp4"]
    assert [block.kind for block in blocks] == ["html", "media", "html", "html", "media", "html"]


def test_many_unclosed_openers_are_scanned_once():
    html = "<iframe " * 20000 + "<p>done</p>"
    assert parse_content_blocks(html) == [HtmlBlock(html)]
    assert list(iter_media_spans(html)) == []


def test_extract_src_takes_first_quoted_value():
    assert extract_src("<iframe SRC = 'https://a' src=\"https://b\"></iframe>") == "https://a"
    assert extract_src("<iframe src=https://unquoted></iframe>") is None


def test_blocks_to_dicts_includes_youtube_thumbnail():
    blocks = parse_content_blocks(
        "<p>x</p><iframe src='https://www.youtube.com/embed/dQw4w9WgXcQ'></iframe>"
    )
    payload = blocks_to_dicts(blocks)
    assert payload[0] == {"type": "html", "html": "<p>x</p>", "offset": 0}
    assert payload[1]["type"] == "media"
    assert payload[1]["tag"] == "iframe"
    assert payload[1]["thumbnail_url"] == "https://img.youtube.com/vi/dQw4w9WgXcQ/hqdefault.jpg"


def test_media_dict_carries_player_url():
    blocks = parse_content_blocks(
        "<iframe src='https://www.youtube.com/watch?v=dQw4w9WgXcQ'></iframe><video src='clip.mp4'></video>"
    )
    youtube, clip = blocks_to_dicts(blocks)
    assert youtube["player_url"] == "https://www.youtube.com/embed/dQw4w9WgXcQ?autoplay=1&playsinline=1"
    assert clip["player_url"] == "clip.mp4"
    assert "thumbnail_url" not in clip
