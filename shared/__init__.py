"""Constants shared by the narrative core and the device drivers."""
