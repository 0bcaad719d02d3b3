# Conversation phases. "Idle" is the absence of a record and "Closed" is its removal,
# so neither has a constant.

# Greeting sent; waiting for a reply or for the escalation timer (T1)
AWAITING_INITIAL_RESPONSE = "waiting_response"

# Survey link sent; waiting for the completion check timer (T2)
SURVEY_OFFERED = "survey_sent"

# Individual questions are being asked one at a time
IN_QANDA = "questions_mode"

PHASES = (AWAITING_INITIAL_RESPONSE, SURVEY_OFFERED, IN_QANDA)
