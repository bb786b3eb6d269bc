"""Hypothesis strategies for property-based testing of klaw-testkit."""

from hypothesis import strategies as st
from klaw_testkit import Delegate, Err, Fail, NotReady, Ok

# -----------------------------------------------------------------------------
# Basic value strategies
# -----------------------------------------------------------------------------

integers = st.integers(min_value=-1_000, max_value=1_000)
texts = st.text(min_size=0, max_size=20)
capacities = st.integers(min_value=1, max_value=8)
seeds = st.integers(min_value=0, max_value=2**32 - 1)

# -----------------------------------------------------------------------------
# Channel entries
# -----------------------------------------------------------------------------

oks = integers.map(Ok)
errs = integers.map(Err)
entries = st.one_of(oks, errs)
entry_lists = st.lists(entries, max_size=30)
item_lists = st.lists(integers, max_size=30)

# -----------------------------------------------------------------------------
# Directives
# -----------------------------------------------------------------------------

# Same mix as arbitrary_ops(): one NotReady for every three Delegate.
not_ready_or_delegate = st.integers(min_value=0, max_value=3).map(lambda n: NotReady() if n == 0 else Delegate())
fails = texts.map(Fail)
directives = st.one_of(not_ready_or_delegate, fails)

non_failing_scripts = st.lists(not_ready_or_delegate, max_size=20)
scripts = st.lists(directives, max_size=20)
