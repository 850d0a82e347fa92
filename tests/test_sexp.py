# tests/test_sexp.py

import pytest

from elsrc.core import sexp
from elsrc.core.sexp import NIL, QUOTE, Symbol, SexpError


def test_reads_nested_lists_strings_and_numbers():
    form = sexp.loads('(foo "bar \\"baz\\"" 12 -3 1.5 (nested :key))')

    assert form == [Symbol("foo"), 'bar "baz"', 12, -3, 1.5, [Symbol("nested"), Symbol(":key")]]
    assert isinstance(form[0], Symbol)
    assert form[5][1].is_keyword


def test_quote_and_comments():
    forms = sexp.loads_all(";; leading comment\n'(a b) ; trailing\n#'c")

    assert forms == [[QUOTE, [Symbol("a"), Symbol("b")]], [QUOTE, Symbol("c")]]
    assert sexp.unquote(forms[0]) == ["a", "b"]


@pytest.mark.parametrize("text", ["(a b", "a)", "", "  ; only a comment"])
def test_unreadable_input(text):
    with pytest.raises(SexpError):
        sexp.loads(text)


def test_to_python_converts_nil_and_t():
    assert sexp.to_python(sexp.loads("(nil t foo)")) == [None, True, "foo"]


def test_plist_to_dict():
    data = sexp.plist_to_dict(sexp.loads('(:fetcher github :repo "me/x" :old-names (a b))'))

    assert data == {"fetcher": "github", "repo": "me/x", "old_names": ["a", "b"]}


def test_plist_requires_keywords():
    with pytest.raises(SexpError):
        sexp.plist_to_dict(sexp.loads("(fetcher github)"))
    with pytest.raises(SexpError):
        sexp.plist_to_dict(sexp.loads("(:fetcher)"))


def test_dumps_define_package():
    form = [Symbol("define-package"), "foo", "1.2", 'Say "hi"',
            [QUOTE, [[Symbol("bar"), "1.0"]]], Symbol(":url"), None]

    text = sexp.dumps(form)

    assert text == '(define-package "foo" "1.2" "Say \\"hi\\"" \'((bar "1.0")) :url nil)'
    assert sexp.loads(text)[4] == [QUOTE, [["bar", "1.0"]]]
    assert sexp.loads(text)[6] == NIL
