"""End-to-end tests: parse result pages then deduplicate across them."""

from citeclean.pipeline import clean_search_results
from citeclean.search.models import ExtractedRecord, MergedResult


def _page(*blocks):
    return "<html><body><div id='gs_res_ccl_mid'>" + "".join(blocks) + "</div></body></html>"


def _result(title, venue, href, extra=""):
    return (
        '<div class="gs_r gs_or gs_scl"><div class="gs_ri">'
        f'<h3 class="gs_rt"><a href="{href}">{title}</a></h3>'
        f'<div class="gs_a">{venue}</div>{extra}'
        "</div></div>"
    )


PAGE_ONE = _page(
    _result(
        "Advances in Neural Networks for NLP",
        "J Smith, A Doe - Journal of AI Research, 2023 - jair.org",
        "https://jair.org/paper1",
        '<div class="gs_rs">This paper explores recent advances in neural networks '
        "for natural language processing.</div>"
        '<a href="https://doi.org/10.5555/jair.2023.001">Publisher</a>'
        '<div class="gs_fl"><a href="/scholar?cites=1">Cited by 45</a></div>',
    ),
)

PAGE_TWO = _page(
    _result(
        "Advances in neural networks for natural language processing",
        "J Smith, A Doe - arXiv preprint, 2023 - arxiv.org",
        "https://arxiv.org/abs/2301.00001",
        '<a href="https://doi.org/10.5555/JAIR.2023.001">doi</a>',
    ),
    _result(
        "Deep Learning in Computer Vision",
        "B Wilson, E Taylor - CVPR Proceedings, 2022 - cvpr.org",
        "https://cvpr.org/paper2",
    ),
)


def test_same_doi_across_pages_merged():
    output = clean_search_results([PAGE_ONE, PAGE_TWO])

    assert len(output) == 2
    merged, other = output
    assert isinstance(merged, MergedResult)
    assert merged.merged_from == ["result_0", "result_1"]
    assert merged.title == "Advances in Neural Networks for NLP"
    assert merged.citations == 45
    assert merged.doi == "10.5555/jair.2023.001"
    assert isinstance(other, ExtractedRecord)
    assert other.title == "Deep Learning in Computer Vision"


def test_manual_review_returns_every_record():
    output = clean_search_results([PAGE_ONE, PAGE_TWO], {"merge_strategy": "manual_review"})
    assert len(output) == 3
    assert not any(isinstance(r, MergedResult) for r in output)


def test_single_page_string_accepted():
    output = clean_search_results(PAGE_TWO)
    assert [r.title for r in output] == [
        "Advances in neural networks for natural language processing",
        "Deep Learning in Computer Vision",
    ]


def test_empty_pages():
    assert clean_search_results([]) == []
    assert clean_search_results(["", "<html></html>"]) == []
