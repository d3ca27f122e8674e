"""Per-session recognition: threshold/debounce state machine, frame scheduler
and the session object that wires detector, gallery and matcher together."""
