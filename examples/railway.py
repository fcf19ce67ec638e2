"""
Railway example.

Demonstrates:
- Building an activity from wiring instructions
- Branching on the signal a task returns
- Extending an activity with merge without touching the original
- Tracing which tasks ran
"""

import logging

from flowcircuit import Activity, End, Left, Right, Trace, task


@task(name="Validate")
def validate(direction, options, flow_options, *args):
    """Fail the run when no email is given."""
    if not options.get("email"):
        return (Left, {**options, "errors": ["email missing"]}, flow_options, *args)
    return (Right, options, flow_options, *args)


@task(name="Persist")
def persist(direction, options, flow_options, *args):
    """Pretend to save the record."""
    return (Right, {**options, "id": 1}, flow_options, *args)


@task(name="Notify")
def notify(direction, options, flow_options, *args):
    """Pretend to send a welcome mail."""
    return (Right, {**options, "notified": True}, flow_options, *args)


def build_signup() -> Activity:
    """Create the base signup activity."""
    return Activity.from_wirings(
        [
            ("attach!", {"target": (validate, {"id": "validate", "type": "task"}), "edge": (Right, {"type": "railway"})}),
            ("attach!", {"source": "validate", "target": (persist, {"id": "persist", "type": "task"}), "edge": (Right, {"type": "railway"})}),
            (
                "attach!",
                {
                    "source": "persist",
                    "target": (End("success"), {"id": "End.success", "type": "event", "role": "success"}),
                    "edge": (Right, {"type": "railway"}),
                },
            ),
            (
                "attach!",
                {
                    "source": "validate",
                    "target": (End("failure"), {"id": "End.failure", "type": "event", "role": "failure"}),
                    "edge": (Left, {"type": "failure"}),
                },
            ),
        ],
        name="signup",
    )


def main() -> None:
    """Run the example."""
    logging.basicConfig(level=logging.INFO)

    signup = build_signup()
    signup.validate()

    # Add a notification step in front of the success end
    signup_with_mail = Activity.merge(
        signup,
        [
            (
                "insert_before!",
                "End.success",
                {
                    "node": (notify, {"id": "notify", "type": "task"}),
                    "outgoing": (Right, {"type": "railway"}),
                    "incoming": lambda edge: edge.get("type") == "railway",
                },
            )
        ],
    )
    signup_with_mail.validate()

    print("Outputs:")
    for end, attrs in signup_with_mail.outputs.items():
        print(f"  {end!r}: {attrs}")

    for options in ({"email": "jo@example.com"}, {}):
        trace = Trace()
        direction, result, _ = trace.call(signup_with_mail, options, {})
        print(f"\nInput: {options}")
        print(f"  Stopped at: {direction!r}")
        print(f"  Result:     {result}")
        print(f"  Path:       {' -> '.join(trace.names())}")

    # The original activity is unchanged
    direction, result, _ = signup({"email": "jo@example.com"}, {})
    print(f"\nOriginal activity result: {result}")

    run = signup.run({"email": "jo@example.com"}, {})
    print(f"Original activity status: {run.status.value} in {run.duration_ms:.2f}ms")


if __name__ == "__main__":
    main()
