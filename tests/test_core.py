"""End-to-end tests for analyze().

Covers the reverse-usage invariants: one entry per target in input order,
sorted and deduplicated buckets, self-exclusion, case-insensitive matching
with case-preserving display, and terminal vs. per-file failures.
"""
import asyncio

import pytest

from whereused.analyzer.core import aggregate, analyze, analyze_async, sorted_names
from whereused.analyzer.errors import InvalidInput, RepositoryNotFound
from whereused.analyzer.models import APEX, UsageBuckets

EMPTY_USAGE = {'Apex': [], 'Flows': [], 'LWC': [], 'Triggers': [], 'Metadata': []}


def usage(**kinds):
    used_by = dict(EMPTY_USAGE)
    used_by.update(kinds)
    return used_by


@pytest.fixture
def foo_repo(make_repo):
    """Foo used by an Apex class and a trigger."""
    return make_repo({
        'classes/Foo.cls': 'public class Foo {}',
        'classes/Bar.cls': 'public class Bar { void m(){ new Foo(); } }',
        'triggers/MyTrigger.trigger': 'trigger MyTrigger on Account (before insert) { Foo.doWork(); }',
    })


class TestScenarios:
    """Reference scenarios from the analyzer contract."""

    def test_apex_and_trigger_usage(self, foo_repo):
        result = [entry.to_dict() for entry in analyze(foo_repo, ['Foo'])]
        assert result == [{
            'class': 'Foo',
            'usedBy': {'Apex': ['Bar'], 'Flows': [], 'LWC': [], 'Triggers': ['MyTrigger'], 'Metadata': []},
        }]

    def test_flow_label_is_recorded(self, make_repo):
        repo = make_repo({
            'flows/Welcome.flow-meta.xml': (
                '<?xml version="1.0" encoding="UTF-8"?>\n'
                '<Flow xmlns="http://soap.sforce.com/2006/04/metadata">\n'
                '    <label>Send Welcome Email</label>\n'
                '    <actionCalls><actionType>apex</actionType><actionName>Foo</actionName></actionCalls>\n'
                '</Flow>\n'
            ),
        })
        [entry] = analyze(repo, ['Foo'])
        assert entry.used_by['Flows'] == ['Send Welcome Email']

    def test_lwc_import_is_recorded(self, make_repo):
        repo = make_repo({'force-app/lwc/myWidget/myWidget.js': "import apex from '@scoped/apex/Foo.getData'"})
        [entry] = analyze(repo, ['Foo'])
        assert entry.used_by['LWC'] == ['myWidget']


class TestInvariants:
    def test_idempotent(self, fixture_project):
        first = [entry.to_dict() for entry in analyze(fixture_project, ['AccountService', 'InvoiceBuilder'])]
        second = [entry.to_dict() for entry in analyze(fixture_project, ['AccountService', 'InvoiceBuilder'])]
        assert first == second

    def test_every_target_gets_an_entry_in_order(self, foo_repo):
        entries = analyze(foo_repo, ['Foo', 'Bar'])
        assert [entry.class_name for entry in entries] == ['Foo', 'Bar']
        assert entries[1].used_by == EMPTY_USAGE

    def test_unknown_class_still_reported(self, foo_repo):
        [entry] = analyze(foo_repo, ['DoesNotExist'])
        assert entry.to_dict() == {'class': 'DoesNotExist', 'usedBy': EMPTY_USAGE}

    def test_self_exclusion(self, make_repo):
        repo = make_repo({'classes/Foo.cls': 'public class Foo { static void a(){ Foo.b(); } static void b(){} }'})
        [entry] = analyze(repo, ['Foo'])
        assert entry.used_by['Apex'] == []

    def test_case_insensitive_match_case_preserving_display(self, make_repo):
        repo = make_repo({'classes/legacyCaller.cls': 'public class legacyCaller { void m(){ NEW foo(); } }'})
        [entry] = analyze(repo, ['Foo'])
        assert entry.used_by['Apex'] == ['legacyCaller']

    def test_repeated_references_deduplicate(self, make_repo):
        repo = make_repo({'classes/Bar.cls': 'new Foo(); new Foo(); Foo.run(); Foo.stop();'})
        [entry] = analyze(repo, ['Foo'])
        assert entry.used_by['Apex'] == ['Bar']

    def test_trigger_extends_is_ignored(self, make_repo):
        repo = make_repo({'triggers/T.trigger': 'trigger T on Account (before insert) { /* extends Foo */ }'})
        [entry] = analyze(repo, ['Foo'])
        assert entry.used_by['Triggers'] == []

    def test_file_paths_as_targets(self, foo_repo):
        entries = analyze(foo_repo, [str(foo_repo / 'classes' / 'Foo.cls')])
        assert entries[0].class_name == 'Foo'
        assert entries[0].used_by['Apex'] == ['Bar']

    def test_buckets_are_sorted(self, make_repo):
        repo = make_repo({
            'classes/zeta.cls': 'Foo.a();',
            'classes/Alpha.cls': 'Foo.a();',
            'classes/beta.cls': 'Foo.a();',
        })
        [entry] = analyze(repo, ['Foo'])
        assert entry.used_by['Apex'] == ['Alpha', 'beta', 'zeta']


class TestFixtureProject:
    """Full scan of tests/fixtures/sfdx_project."""

    TARGETS = ['AccountService', 'AccountController', 'InvoiceBuilder', 'BaseHandler', 'Notifier']

    @pytest.fixture
    def results(self, fixture_project):
        return {entry.class_name: entry.used_by for entry in analyze(fixture_project, self.TARGETS)}

    def test_account_service(self, results):
        assert results['AccountService'] == usage(
            Apex=['AccountController'],
            Triggers=['AccountTrigger'],
            Flows=['Send Welcome Email'],
            Metadata=['Sales_User.permissionset-meta.xml'],
        )

    def test_account_controller(self, results):
        assert results['AccountController'] == usage(
            LWC=['accountCard', 'invoiceTable'],
            Metadata=['Sales_User.permissionset-meta.xml'],
        )

    def test_invoice_builder(self, results):
        assert results['InvoiceBuilder'] == usage(
            Apex=['AccountController'],
            Flows=['Invoice_Reminder_Flow'],
        )

    def test_inheritance(self, results):
        assert results['BaseHandler'] == usage(Apex=['OpportunityHandler'])
        assert results['Notifier'] == usage(Apex=['CleanupBatch'])

    def test_ignored_directories_do_not_contribute(self, results):
        everything = [name for used_by in results.values() for names in used_by.values() for name in names]
        assert 'Shim' not in everything
        assert 'Cached' not in everything

    def test_trace_narrates_progress(self, fixture_project, trace):
        analyze(fixture_project, ['AccountService'], trace)
        assert 'Scanning 7 Apex classes for references.' in trace.infos
        assert trace.infos[-1] == 'Analysis complete. Preparing results.'
        assert trace.warnings == []

    def test_trace_does_not_change_results(self, fixture_project, trace):
        silent = analyze(fixture_project, self.TARGETS)
        narrated = analyze(fixture_project, self.TARGETS, trace)
        assert silent == narrated

    def test_single_thread_matches_pool(self, fixture_project):
        assert analyze(fixture_project, self.TARGETS, max_workers=1) == analyze(fixture_project, self.TARGETS, max_workers=8)


class TestFailures:
    def test_empty_targets(self, foo_repo):
        with pytest.raises(InvalidInput):
            analyze(foo_repo, [])

    def test_blank_targets(self, foo_repo):
        with pytest.raises(InvalidInput):
            analyze(foo_repo, ['  ', ''])

    def test_missing_repository(self, tmp_path):
        with pytest.raises(RepositoryNotFound, match="does not exist"):
            analyze(tmp_path / 'nope', ['Foo'])

    def test_file_is_not_a_repository(self, tmp_path):
        path = tmp_path / 'file.txt'
        path.write_text('x')
        with pytest.raises(RepositoryNotFound):
            analyze(path, ['Foo'])

    def test_targets_checked_before_repository(self, tmp_path):
        with pytest.raises(InvalidInput):
            analyze(tmp_path / 'nope', [])

    def test_malformed_flow_does_not_abort(self, make_repo, trace):
        repo = make_repo({
            'flows/Broken.flow-meta.xml': '<Flow><apexClass>Foo</apexClass><label',
            'classes/Bar.cls': 'new Foo();',
        })
        [entry] = analyze(repo, ['Foo'], trace)
        assert entry.used_by['Apex'] == ['Bar']
        assert entry.used_by['Flows'] == []
        assert len(trace.warnings) == 1


class TestAggregation:
    def test_aggregate_empty_buckets(self):
        entries = aggregate(['Foo'], {'Foo': UsageBuckets()})
        assert entries[0].used_by == EMPTY_USAGE

    def test_aggregate_sorts(self):
        buckets = UsageBuckets()
        for name in ['b', 'C', 'a']:
            buckets.add(APEX, name)
        entries = aggregate(['Foo'], {'Foo': buckets})
        assert entries[0].used_by['Apex'] == ['a', 'b', 'C']

    def test_sorted_names_is_stable_for_case_variants(self):
        assert sorted_names(['foo', 'Foo', 'bar']) == sorted_names(['Foo', 'bar', 'foo'])

    def test_accented_names_sort_with_their_base_letter(self):
        assert sorted_names(['Zeta', 'Éclair', 'Alpha']) == ['Alpha', 'Éclair', 'Zeta']
        assert sorted_names(['Órdenes', 'Nómina', 'Pagos']) == ['Nómina', 'Órdenes', 'Pagos']

    def test_unaccented_before_accented_and_lower_before_upper(self):
        assert sorted_names(['éclair', 'Eclair', 'eclair']) == ['eclair', 'Eclair', 'éclair']

    def test_accented_flow_labels_end_to_end(self, make_repo):
        action = '<actionCalls><actionType>apex</actionType><actionName>Foo</actionName></actionCalls>'
        repo = make_repo({
            f'flows/F{i}.flow-meta.xml': f'<Flow><label>{label}</label>{action}</Flow>'
            for i, label in enumerate(['Zona', 'Área de ventas', 'Bienvenida'])
        })
        [entry] = analyze(repo, ['Foo'])
        assert entry.used_by['Flows'] == ['Área de ventas', 'Bienvenida', 'Zona']

    def test_analyze_async(self, foo_repo):
        entries = asyncio.run(analyze_async(foo_repo, ['Foo']))
        assert entries[0].used_by['Apex'] == ['Bar']
