"""Room timer: pure state machine (``engine``) and its command runner
(``service``) with storage and broadcast collaborators."""
