"""Shared fixtures for the irmutate test suite."""

import pytest

from irmutate.codec import parse_assembly
from irmutate.core import Context
from irmutate.engine import DEFAULT_TYPE_NAMES

# Printed exactly the way the writer prints it
SAMPLE_IR = """\
; ModuleID = 'sample'

declare i32 @ext(i32, i32)

define i32 @sum(i32 %a, i32 %b, ptr %p) {
entry:
  %c = icmp slt i32 %a, %b
  %x = add nsw i32 %a, %b
  %q = alloca i64
  %r = getelementptr inbounds i8, ptr %q, i64 8
  store i32 %x, ptr %p
  br i1 %c, label %then, label %exit

then:
  %y = mul i32 %x, 3
  %z = zext i32 %y to i64
  %t = trunc i64 %z to i16
  br label %exit

exit:
  %v = load i32, ptr %p
  %w = sub i32 %v, %x
  ret i32 %w
}

define double @scale(double %f, float %g) {
entry:
  %e = fpext float %g to double
  %m = fmul nnan double %f, %e
  %n = fneg double %m
  %k = fcmp olt double %n, 1.5
  %s = select i1 %k, double %n, double %f
  ret double %s
}
"""

SINGLE_BLOCK_IR = """\
define void @f() {
entry:
  ret void
}
"""


@pytest.fixture
def context():
    return Context()


@pytest.fixture
def sample_module(context):
    return parse_assembly(SAMPLE_IR, context)


@pytest.fixture
def single_block_module(context):
    return parse_assembly(SINGLE_BLOCK_IR, context)


@pytest.fixture
def known_types(context):
    return [context.lookup_type(name) for name in DEFAULT_TYPE_NAMES]
