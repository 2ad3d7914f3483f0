# TODO: Compile shallow clones of the supported schema releases (1.5.0, 1.6.0, 1.7.0)
#       in CI and import every emitted module, in addition to the miniature schema.
