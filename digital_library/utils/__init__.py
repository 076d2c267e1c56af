"""Small helpers shared by the models and the front ends."""
