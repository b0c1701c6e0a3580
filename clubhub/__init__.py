"""Club membership API: phone/OTP auth, clubs, invites, applications, events."""
