from calcagent.cli import main

raise SystemExit(main())
