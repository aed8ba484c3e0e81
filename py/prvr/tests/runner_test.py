# pytest tests for running tests, with a fake document engine
import json

import prvr.doctree as dt
import prvr.runner as runner
import prvr.testcase as tc
import prvr.testgroup as tgroup
from prvr.report import Outcome

import fakepandoc

STUFF = "Stuff is *important*!"
STUFF_DOC = dt.document([dt.para([dt.str_("Stuff"), dt.space(), dt.str_("is"), dt.space(),
                                  dt.emph([dt.str_("important")]), dt.str_("!")])])


def options_meta(**options) -> dict:
    def metavalue(value):
        if isinstance(value, bool):
            return {'t': 'MetaBool', 'c': value}
        if isinstance(value, list):
            return {'t': 'MetaList', 'c': [metavalue(v) for v in value]}
        return {'t': 'MetaString', 'c': value}
    return {'perevir': {'t': 'MetaMap', 'c': {k.replace('_', '-'): metavalue(v)
                                              for k, v in options.items()}}}


def make_test(blocks, filepath="test.md", **options) -> tc.TestCase:
    parser = tc.TestParser(fakepandoc.FakePandoc())
    return parser.from_document(dt.document(blocks, options_meta(**options) if options else {}), filepath)


def json_output(doc: dt.Document, ident="output") -> dt.Element:
    return dt.code_block(json.dumps(doc), ident, ["json"])


def test_pass():
    test = make_test([dt.code_block(STUFF, "input"), json_output(STUFF_DOC)])
    result = runner.TestRunner(fakepandoc.FakePandoc()).run_test(test)
    assert result.outcome is Outcome.PASS
    assert result.success


def test_input_text_gets_final_newlines():
    engine = fakepandoc.FakePandoc()
    test = make_test([dt.code_block(STUFF, "input", attributes=dict(format="commonmark",
                                                                    extensions="+smart")),
                      json_output(STUFF_DOC)])
    runner.TestRunner(engine).run_test(test)
    assert ('read', (STUFF + "\n\n", "commonmark+smart")) in engine.calls


def test_fail_prints_diff(capsys):
    other = dt.document([dt.para([dt.str_("Other")])])
    test = make_test([dt.code_block(STUFF, "input"), json_output(other)])
    engine = fakepandoc.FakePandoc()
    result = runner.TestRunner(engine).run_test(test)
    assert result.outcome is Outcome.FAIL
    assert not result.success
    out, err = capsys.readouterr()
    assert "*** expected" in err
    assert "--- actual" in err
    assert ('write', ("native", False, None)) in engine.calls


def test_comparison_does_not_modify_document():
    test = make_test([dt.code_block("a\nb", "input"), json_output(dt.document([]))])
    before = json.dumps(test.document)
    runner.TestRunner(fakepandoc.FakePandoc()).run_test(test)
    assert json.dumps(test.document) == before


def test_disabled_needs_neither_input_nor_output():
    test = make_test([dt.para([dt.str_("nothing here")])], disable=True)
    result = runner.TestRunner(fakepandoc.FakePandoc()).run_test(test)
    assert result.outcome is Outcome.DISABLED
    assert result.success


def test_missing_input():
    test = make_test([json_output(STUFF_DOC)])
    result = runner.TestRunner(fakepandoc.FakePandoc()).run_test(test)
    assert result.outcome is Outcome.FAIL
    assert "No input found" in result.message


def test_missing_output():
    test = make_test([dt.code_block(STUFF, "input")])
    result = runner.TestRunner(fakepandoc.FakePandoc()).run_test(test)
    assert result.outcome is Outcome.FAIL
    assert "No expected output" in result.message


def test_unparsable_expected():
    test = make_test([dt.code_block(STUFF, "input"), dt.code_block("[ Para", "output", ["json"])])
    result = runner.TestRunner(fakepandoc.FakePandoc()).run_test(test)
    assert result.outcome is Outcome.FAIL
    assert "Could not read the expected output as 'json'" in result.message


def test_ignore_softbreaks():
    wrapped = "Stuff is\n*important*!"
    blocks = [dt.code_block(wrapped, "input"), json_output(STUFF_DOC)]
    the_runner = runner.TestRunner(fakepandoc.FakePandoc())
    assert the_runner.run_test(make_test(blocks)).outcome is Outcome.FAIL
    assert the_runner.run_test(make_test(blocks, ignore_softbreaks=True)).outcome is Outcome.PASS


def test_metastrings_to_inlines_and_custom_reader():
    def reader(text: str, attr: list) -> dt.Document:
        assert attr[0] == "in"
        return dt.document([], {'title': {'t': 'MetaString', 'c': text.strip()}})
    expected = dt.document([], {'title': {'t': 'MetaInlines', 'c': dt.text_to_inlines("A title")}})
    blocks = [dt.code_block("A title", "in"), json_output(expected)]
    the_runner = runner.TestRunner(fakepandoc.FakePandoc(), reader=reader)
    assert the_runner.run_test(make_test(blocks)).outcome is Outcome.FAIL
    result = the_runner.run_test(make_test(blocks, metastrings_to_inlines=True))
    assert result.outcome is Outcome.PASS


def test_compare_strings():
    expected_text = json.dumps(fakepandoc.plain_read(STUFF), sort_keys=True)
    blocks = [dt.code_block(STUFF, "input"), dt.code_block(expected_text, "output", ["html"])]
    engine = fakepandoc.FakePandoc()
    result = runner.TestRunner(engine).run_test(make_test(blocks, compare="strings"))
    assert result.outcome is Outcome.PASS
    assert ('write', ("html", False, None)) in engine.calls
    assert not any(call == 'read' and details[1] == "html" for call, details in engine.calls)


def test_unknown_compare_mode():
    blocks = [dt.code_block(STUFF, "input"), json_output(STUFF_DOC)]
    result = runner.TestRunner(fakepandoc.FakePandoc()).run_test(make_test(blocks, compare="bytes"))
    assert result.outcome is Outcome.FAIL
    assert "Unknown compare mode 'bytes'" in result.message


def test_filters_run_in_order_with_target_format():
    def append(word):
        def the_filter(doc, env):
            return dt.document(doc['blocks'] + [dt.para([dt.str_(word)])], doc['meta'])
        return the_filter
    engine = fakepandoc.FakePandoc(filters={'one.lua': append("one"), 'two.py': append("two")})
    expected = dt.document([dt.para([dt.str_("x")]), dt.para([dt.str_("one")]),
                            dt.para([dt.str_("References")]), dt.para([dt.str_("two")])])
    blocks = [dt.code_block("x", "input"), json_output(expected)]
    test = make_test(blocks, filters=["one.lua", "citeproc", "two.py"])
    result = runner.TestRunner(engine).run_test(test)
    assert result.outcome is Outcome.PASS
    filtercalls = [details for call, details in engine.calls if call in ('filter', 'citeproc')]
    assert filtercalls == [("one.lua", "json"), None, ("two.py", "json")]


def test_unknown_filter_fails_the_test():
    blocks = [dt.code_block("x", "input"), json_output(dt.document([]))]
    result = runner.TestRunner(fakepandoc.FakePandoc()).run_test(make_test(blocks, filters=["nope.lua"]))
    assert result.outcome is Outcome.FAIL
    assert "Filter 'nope.lua' failed" in result.message


def test_custom_writer():
    writers = dict(custom=lambda doc: dt.stringify(doc['blocks'][0]).upper())
    blocks = [dt.code_block(STUFF, "input"), dt.code_block("STUFF IS IMPORTANT!", "output", ["custom"])]
    result = runner.TestRunner(fakepandoc.FakePandoc(), writers=writers).run_test(make_test(blocks))
    assert result.outcome is Outcome.PASS


def test_div_input_and_output():
    content = [dt.para([dt.str_("same")])]
    blocks = [dt.div(content, "input"), dt.div(content, "expected", ["html"])]
    engine = fakepandoc.FakePandoc()
    result = runner.TestRunner(engine).run_test(make_test(blocks))
    assert result.outcome is Outcome.PASS
    assert engine.calls == []  # nothing to read or write


def test_command_test():
    engine = fakepandoc.FakePandoc(piped="<p><em>x</em></p>\n")
    blocks = [dt.code_block("/x/", "input"),
              dt.code_block("pandoc --from=org --to=html", "command"),
              dt.code_block("<p><em>x</em></p>", "output", ["html"])]
    result = runner.TestRunner(engine).run_test(make_test(blocks))
    assert result.outcome is Outcome.PASS
    assert engine.calls == [('pipe', (["--from=org", "--to=html"], "/x/"))]


def test_command_test_compares_strings_exactly():
    engine = fakepandoc.FakePandoc(piped="<p><em>x</em></p>\n\n")
    blocks = [dt.code_block("/x/", "input"),
              dt.code_block("pandoc --from=org --to=html", "command"),
              dt.code_block("<p><em>x</em></p>", "output")]
    assert runner.TestRunner(engine).run_test(make_test(blocks)).outcome is Outcome.FAIL


def test_command_must_be_pandoc():
    blocks = [dt.code_block("x", "input"), dt.code_block("cat -n", "command"),
              dt.code_block("x", "output")]
    result = runner.TestRunner(fakepandoc.FakePandoc()).run_test(make_test(blocks))
    assert result.outcome is Outcome.FAIL
    assert result.message == "Must be a pandoc command."


def test_accept_rewrites_output(tmp_path):
    testfile = tmp_path / "t.md"
    testfile.write_text("placeholder")
    blocks = [dt.code_block(STUFF, "input"), json_output(dt.document([]), "out")]
    engine = fakepandoc.FakePandoc()
    test = make_test(blocks, filepath=str(testfile))
    result = runner.TestRunner(engine).run_test(test, accepting=True)
    assert result.outcome is Outcome.ACCEPTED
    written = json.loads(testfile.read_text())
    outblock = written['blocks'][1]
    assert dt.identifier(outblock) == "out"
    assert json.loads(dt.code_text(outblock)) == STUFF_DOC


def test_accept_without_output_appends_block(tmp_path):
    testfile = tmp_path / "t.md"
    test = make_test([dt.code_block(STUFF, "input")], filepath=str(testfile))
    result = runner.TestRunner(fakepandoc.FakePandoc()).run_test(test, accepting=True)
    assert result.outcome is Outcome.ACCEPTED
    written = json.loads(testfile.read_text())
    assert len(written['blocks']) == 2
    assert dt.identifier(written['blocks'][1]) == "expected"


def test_accept_passing_test_leaves_file_alone(tmp_path):
    testfile = tmp_path / "t.md"
    testfile.write_text("untouched")
    test = make_test([dt.code_block(STUFF, "input"), json_output(STUFF_DOC)], filepath=str(testfile))
    result = runner.TestRunner(fakepandoc.FakePandoc()).run_test(test, accepting=True)
    assert result.outcome is Outcome.PASS
    assert testfile.read_text() == "untouched"


def test_group_continues_after_broken_file(tmp_path, capsys):
    good = dt.document([dt.code_block(STUFF, "in"), json_output(STUFF_DOC)])
    bad = dt.document([dt.code_block(STUFF, "in"), dt.code_block(STUFF, "input")])
    (tmp_path / "1-bad.json").write_text(json.dumps(bad))
    (tmp_path / "2-good.json").write_text(json.dumps(good))
    engine = fakepandoc.FakePandoc()
    group = tgroup.TestGroup.from_path(str(tmp_path), engine)
    results = runner.TestRunner(engine).run_test_group(group, tc.TestParser(engine, "json"))
    assert [r.outcome for r in results] == [Outcome.FAIL, Outcome.PASS]
    assert "two potential input blocks" in results[0].message


def test_group_options_apply_to_each_test(tmp_path):
    good = dt.document([dt.code_block("a\nb", "in"), json_output(fakepandoc.plain_read("a b"))])
    (tmp_path / "t.json").write_text(json.dumps(good))
    engine = fakepandoc.FakePandoc()
    the_runner = runner.TestRunner(engine)
    parser = tc.TestParser(engine, "json")
    plain = tgroup.TestGroup([tgroup.TestEntry(str(tmp_path / "t.json"))], {})
    assert the_runner.run_test_group(plain, parser)[0].outcome is Outcome.FAIL
    softened = tgroup.TestGroup([tgroup.TestEntry(str(tmp_path / "t.json"))], {'ignore-softbreaks': True})
    assert the_runner.run_test_group(softened, parser)[0].outcome is Outcome.PASS
